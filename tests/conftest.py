import random
import string
import os.path
import pytest
import numpy as np

from seisxcorrelation.config import Config
from seisxcorrelation.xcorqc.noise import RawChannel, GeoLoc

TESTS = os.path.dirname(__file__)

# Stations sorted by name; the last two share NET.STA.LOC
STATIONS = ['XX.X..BHZ', 'XX.Y..BHZ', 'XX.Z..BHN', 'XX.Z..BHZ']


@pytest.fixture
def test_dir():
    return TESTS


@pytest.fixture
def random_filename(tmpdir_factory):
    def make_random_filename(ext=''):
        dir = str(tmpdir_factory.mktemp('seisxcorrelation').realpath())
        fname = ''.join(random.choice(string.ascii_lowercase)
                        for _ in range(10))
        return os.path.join(dir, fname + ext)
    return make_random_filename


@pytest.fixture
def stations():
    return list(STATIONS)


@pytest.fixture
def params_dict(tmpdir):
    return {'basefoname': str(tmpdir.join('OUT')),
            'timeunit': 3600,
            'freqmin': 0.01,
            'freqmax': 0.4,
            'fs': 1.0,
            'cc_len': 600,
            'cc_step': 300,
            'to_whiten': False,
            'time_norm': 'none',
            'half_win': 2,
            'water_level': 0.01,
            'corrtype': ['xcorr'],
            'corrmethod': 'cross-correlation',
            'maxtimelag': 100.0,
            'allstack': True,
            'stacktype': 'mean'}


@pytest.fixture
def params(params_dict):
    return Config.from_dict(params_dict)


@pytest.fixture
def high_order_params_dict(params_dict, tmpdir):
    result = dict(params_dict)
    result.update({'basefoname': str(tmpdir.join('C3')),
                   'maxtimelag': 20.0,
                   'start_lag': 10,
                   'window_len': 50,
                   'allowable_vs': list(STATIONS),
                   'allowable_pairs': ['{}.{}'.format(a, b)
                                       for a in STATIONS for b in STATIONS if a != b]})
    return result


@pytest.fixture
def make_channel():
    def _make_channel(stn, npts=3600, fs=1.0, seed=None, misc=None, t=None,
                      starttime=0., lat=None):
        rs = np.random.RandomState(seed if seed is not None else sum(map(ord, stn)))
        if lat is None:
            lat = float(STATIONS.index(stn)) if stn in STATIONS else 0.
        return RawChannel(stn, fs, rs.randn(npts), t=t, loc=GeoLoc(lat, 130., 0.),
                          misc=misc, starttime=starttime)
    return _make_channel

"""
Description:
    Tests HDF5 storage of raw records and correlation functions

CreationDate:   18/02/19

Revision History:
    LastUpdate:     18/02/19   Storage tests
"""

import h5py
import numpy as np
import pytest

from seisxcorrelation.xcorqc.io import write_raw_channels, list_timestamps, TimestampView, \
    OutputStore, output_filename, read_corr, read_strings, read_raw_channel
from seisxcorrelation.xcorqc.noise import CorrData, GeoLoc


@pytest.fixture
def input_file(random_filename, make_channel, stations):
    fn = random_filename('.h5')
    for tstamp in ('2019-01-02', '2019-01-01'):
        write_raw_channels(fn, tstamp, {stn: make_channel(stn, misc={'dlerror': 0})
                                        for stn in stations})
    # end for
    return fn


def test_list_timestamps(input_file):
    with h5py.File(input_file, 'a') as h5:
        h5.create_group('info')
        assert list_timestamps(h5) == ['2019-01-01', '2019-01-02']
    # end with
# end func


def test_raw_channel(input_file, make_channel, stations):
    with h5py.File(input_file, 'r') as h5:
        ch = read_raw_channel(h5['2019-01-01'][stations[1]])
    # end with
    expected = make_channel(stations[1])

    assert ch.id == stations[1]
    assert ch.fs == 1.
    assert np.allclose(ch.x, expected.x)
    assert np.array_equal(ch.t, [[0, 3599]])
    assert ch.loc == expected.loc
    assert ch.misc['dlerror'] == 0
# end func


def test_timestamp_view(input_file, stations):
    with h5py.File(input_file, 'r') as h5:
        view = TimestampView(h5, '2019-01-01')
        keys = ['2019-01-01/{}'.format(stn) for stn in stations]

        assert sorted(view.keys()) == keys
        assert view[keys[0]].id == stations[0]

        del view[keys[0]]
        assert keys[0] not in view
        assert len(view) == len(stations) - 1
        with pytest.raises(KeyError):
            view[keys[0]]
        # end with

        # file is untouched
        assert stations[0] in h5['2019-01-01']
        assert len(TimestampView(h5, '2019-01-03')) == 0
    # end with
# end func


def test_output_store(random_filename):
    basefoname = random_filename()
    A, B = 'XX.A..BHZ', 'XX.B..BHZ'
    C = CorrData('{}.{}'.format(A, B), 1.0, 50., np.random.randn(101, 3),
                 t=[0., 300., 600.], cc_len=600., cc_step=300., freqmax=0.5,
                 misc={'dist': 12.5, 'location': {A: GeoLoc(1, 2, 3), B: GeoLoc(4, 5, 6)}})

    with OutputStore(basefoname, 't0') as out:
        out.write_info('stationlist', [A, B])
        out.write_info('timeunit', 3600.)
        out.write_corr(C.name, C)
        # writes overwrite by key
        out.write_corr(C.name, C)
        out.write_errors([])
    # end with

    with OutputStore(basefoname, 't0') as out:
        out.write_errors(['t0/XX.C..BHZ'])
    # end with

    with h5py.File(output_filename(basefoname, 't0'), 'r') as h5:
        assert read_strings(h5, 'info/stationlist') == [A, B]
        assert read_strings(h5, 'info/errors') == ['t0/XX.C..BHZ']

        R = read_corr(h5['t0'][C.name])
        assert R.name == C.name
        assert np.allclose(R.corr, C.corr)
        assert np.allclose(R.t, C.t)
        assert R.maxlag == 50.
        assert R.misc['dist'] == 12.5
        assert R.misc['location'] == C.misc['location']
    # end with
# end func

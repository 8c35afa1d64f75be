#!/bin/env python
"""
Description:
    Tests the first-order cross-correlation driver

References:

CreationDate:   04/02/19

Revision History:
    LastUpdate:     04/02/19   Driver tests
    LastUpdate:     22/10/19   Error isolation tests
    LastUpdate:     05/11/19   Candidate station and re-run tests
"""

import logging

import h5py
import numpy as np
import pytest

from seisxcorrelation.config import Config
from seisxcorrelation.xcorqc import xcorrelation
from seisxcorrelation.xcorqc.cache import StationFFTCache
from seisxcorrelation.xcorqc.io import output_filename, read_corr, read_strings
from seisxcorrelation.xcorqc.noise import compute_station_fft
from seisxcorrelation.xcorqc.pairing import pair_name
from seisxcorrelation.xcorqc.xcorrelation import seisxcorrelation, station_list

X, Y, Z = 'XX.X..BHZ', 'XX.Y..BHZ', 'XX.Z..BHZ'


@pytest.fixture
def working_set(make_channel):
    return {'t0/{}'.format(stn): make_channel(stn) for stn in (Z, X, Y)}


@pytest.fixture
def transform_calls():
    return []


@pytest.fixture
def counting_transform(transform_calls):
    def transform(channel, params):
        transform_calls.append(channel.id)
        return compute_station_fft(channel, params)
    return transform


def test_station_list(working_set):
    working_set['t1/XX.A..BHZ'] = None

    assert station_list(working_set, 't0') == [X, Y, Z]
# end func


def test_three_stations(working_set, params, counting_transform, transform_calls):
    errors = seisxcorrelation(working_set, 't0', params, transform=counting_transform)

    assert len(errors) == 0
    # each station transformed once and released
    assert sorted(transform_calls) == [X, Y, Z]
    assert len(working_set) == 0

    with h5py.File(output_filename(params.basefoname, 't0'), 'r') as h5:
        assert sorted(h5['t0'].keys()) == [pair_name(X, Y), pair_name(X, Z), pair_name(Y, Z)]
        assert read_strings(h5, 'info/stationlist') == [X, Y, Z]
        assert h5['info/timeunit'][()] == 3600.
        assert read_strings(h5, 'info/errors') == []

        C = read_corr(h5['t0'][pair_name(X, Y)])
        assert C.name == pair_name(X, Y)
        assert C.corr.shape == (201, 1)
        assert C.misc['nstacked'] == 11
        assert C.misc['dist'] == pytest.approx(110.6, abs=0.5)
    # end with
# end func


def test_pairs_visited_once(make_channel, params_dict, monkeypatch, stations):
    visited = []
    correlate = xcorrelation.correlate

    def counting_correlate(F1, F2, stn1, stn2, *args, **kwargs):
        visited.append((stn1, stn2))
        return correlate(F1, F2, stn1, stn2, *args, **kwargs)
    # end func

    monkeypatch.setattr(xcorrelation, 'correlate', counting_correlate)
    params_dict['corrtype'] = ['acorr', 'xcorr', 'xchancorr']
    params = Config.from_dict(params_dict)
    data = {'t0/{}'.format(stn): make_channel(stn) for stn in stations}

    seisxcorrelation(data, 't0', params)

    n = len(stations)
    assert len(visited) == n * (n + 1) // 2
    assert len(set(frozenset(p) for p in visited)) == len(visited)
    assert all(stations.index(a) <= stations.index(b) for a, b in visited)
# end func


def test_corrtype_filter(make_channel, params_dict, stations):
    params_dict['corrtype'] = ['xchancorr']
    params = Config.from_dict(params_dict)
    data = {'t0/{}'.format(stn): make_channel(stn) for stn in stations}

    seisxcorrelation(data, 't0', params)

    with h5py.File(output_filename(params.basefoname, 't0'), 'r') as h5:
        assert list(h5['t0'].keys()) == [pair_name('XX.Z..BHN', 'XX.Z..BHZ')]
    # end with
# end func


def test_rejected_station(working_set, make_channel, params, counting_transform,
                          transform_calls):
    W = 'XX.W..BHZ'
    working_set['t0/{}'.format(W)] = make_channel(W, misc={'dlerror': 1})

    errors = seisxcorrelation(working_set, 't0', params, transform=counting_transform)

    assert errors.to_list() == ['t0/{}'.format(W)]
    assert W not in transform_calls

    with h5py.File(output_filename(params.basefoname, 't0'), 'r') as h5:
        keys = list(h5['t0'].keys())
        assert len(keys) == 3
        assert all(W not in k for k in keys)
        assert read_strings(h5, 'info/errors') == ['t0/{}'.format(W)]
        # rejected stations remain in the station list
        assert read_strings(h5, 'info/stationlist') == [W, X, Y, Z]
    # end with
# end func


def test_transform_failure_isolated(working_set, params):
    def transform(channel, params):
        if channel.id == X:
            raise RuntimeError('bad FFT')
        return compute_station_fft(channel, params)
    # end func

    errors = seisxcorrelation(working_set, 't0', params, transform=transform)

    assert errors.to_list() == ['t0/{}'.format(X)]
    with h5py.File(output_filename(params.basefoname, 't0'), 'r') as h5:
        assert list(h5['t0'].keys()) == [pair_name(Y, Z)]
    # end with
# end func


def test_pair_failure_isolated(working_set, make_channel, params):
    # no windows in common with the other stations
    working_set['t0/{}'.format(Y)] = make_channel(Y, starttime=1e6)

    errors = seisxcorrelation(working_set, 't0', params)

    # recorded against the source station of each failing pair; neither station
    # is rejected, so X.Z is still computed
    assert errors.to_list() == ['t0/{}'.format(X), 't0/{}'.format(Y)]
    with h5py.File(output_filename(params.basefoname, 't0'), 'r') as h5:
        assert list(h5['t0'].keys()) == [pair_name(X, Z)]
    # end with
# end func


def test_rejected_station_leaves_later_rows(working_set, make_channel, params, mocker):
    working_set['t0/{}'.format(Z)] = make_channel(Z, misc={'dlerror': 1})
    spy = mocker.spy(StationFFTCache, 'get_or_compute')

    errors = seisxcorrelation(working_set, 't0', params)

    assert errors.to_list() == ['t0/{}'.format(Z)]
    # Z is requested in the row of X only; the row of Y no longer includes it
    requested = [c[0][1] for c in spy.call_args_list]
    assert requested == [X, Y, Z, Y]
# end func


def test_rerun_replaces_output(make_channel, params):
    data = {'t0/{}'.format(stn): make_channel(stn) for stn in (X, Y, Z)}
    seisxcorrelation(data, 't0', params)

    data = {'t0/{}'.format(stn): make_channel(stn) for stn in (X, Z)}
    data['t0/{}'.format(Y)] = make_channel(Y, misc={'dlerror': 1})
    seisxcorrelation(data, 't0', params)

    with h5py.File(output_filename(params.basefoname, 't0'), 'r') as h5:
        assert list(h5['t0'].keys()) == [pair_name(X, Z)]
        assert read_strings(h5, 'info/errors') == ['t0/{}'.format(Y)]
    # end with
# end func


def test_pair_counts_logged(working_set, params, caplog):
    with caplog.at_level(logging.INFO):
        seisxcorrelation(working_set, 't0', params)
    # end with

    assert '3 stations (3 xcorr)' in caplog.text
# end func


def test_unstacked(working_set, params_dict):
    params_dict['allstack'] = False
    params_dict['corrmethod'] = 'coherence'
    params = Config.from_dict(params_dict)

    seisxcorrelation(working_set, 't0', params)

    with h5py.File(output_filename(params.basefoname, 't0'), 'r') as h5:
        C = read_corr(h5['t0'][pair_name(X, Z)])
        assert C.corr.shape == (201, 11)
        assert C.corr_type == 'coherence'
        assert np.allclose(C.t, np.arange(11) * 300.)
    # end with
# end func


def test_invalid_method(working_set, params):
    params.corrmethod = 'xcorr'

    with pytest.raises(ValueError):
        seisxcorrelation(working_set, 't0', params)
    # end with
# end func

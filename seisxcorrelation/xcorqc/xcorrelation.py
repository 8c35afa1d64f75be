#!/usr/bin/env python
"""
Description:
    First-order cross-correlation of all station-pairs within a timestamp.

    Station spectra are computed once, cached, and reused across every pair a station
    takes part in. Pairs are visited in upper-triangular order over the sorted station
    list, so that each unordered pair is correlated once; a station's spectrum and raw
    record are released as soon as its row of pairs is complete. Stations and pairs
    that fail are recorded and skipped, without aborting the timestamp.

References:

CreationDate:   04/02/19

Revision History:
    LastUpdate:     04/02/19   First-order correlation driver
    LastUpdate:     11/02/19   Per-station quality checks and error isolation
    LastUpdate:     22/10/19   Isolate FFT failures instead of terminating
    LastUpdate:     05/11/19   Truncate output on re-runs; rows driven by candidate stations
"""

import logging

from ordered_set import OrderedSet

from seisxcorrelation.xcorqc.cache import StationFFTCache
from seisxcorrelation.xcorqc.correlation import correlate, get_strategy, STACKING_RULES
from seisxcorrelation.xcorqc.io import OutputStore
from seisxcorrelation.xcorqc.pairing import generate_pairs, get_corrtype, pair_name, \
    sort_pairs
from seisxcorrelation.xcorqc.utils import ErrorList, MemoryTracker

log = logging.getLogger(__name__)


def station_list(data, tstamp):
    """Sorted station names from the 'tstamp/station' keys of data"""
    prefix = '{}/'.format(tstamp)
    return sorted(k[len(prefix):] for k in data.keys() if k.startswith(prefix))
# end func


def seisxcorrelation(data, tstamp, params, transform=None, logger=None):
    """
    Computes cross-correlations for all station-pairs of a timestamp and writes them,
    along with station-list, time-unit and errors, to '<basefoname>.<tstamp>.h5'.

    :param data: working set of RawChannels keyed by 'tstamp/NET.STA.LOC.CHA'; entries
                 are deleted as stations are completed
    :param tstamp: timestamp to process
    :param params: Config
    :param transform: callable(RawChannel, params) -> FFTData; defaults to
                      noise.compute_station_fft
    :param logger: logger; defaults to the module logger
    :return: ErrorList of failed stations and station-pairs
    """
    logger = logger if logger else log

    # configuration errors are not recoverable per pair
    get_strategy(params.corrmethod)
    if params.allstack and params.stacktype not in STACKING_RULES:
        raise ValueError('Invalid stacking rule {}'.format(params.stacktype))
    # end if

    stlist = station_list(data, tstamp)
    stations = OrderedSet(stlist)
    errors = ErrorList(tstamp, logger)
    cache = StationFFTCache(tstamp, data, stations, errors, params, transform=transform,
                            logger=logger)
    memTracker = MemoryTracker(logger=logger)

    pairs = sort_pairs(generate_pairs(stlist))
    logger.info('{}: Computing cross-correlations for {} stations ({})'.format(
                tstamp, len(stlist), ', '.join('{} {}'.format(len(pairs[ct]), ct)
                                               for ct in params.corrtype if ct in pairs)))

    # previous results for this timestamp are discarded
    with OutputStore(params.basefoname, tstamp, mode='w') as out:
        out.write_info('stationlist', stlist)
        out.write_info('timeunit', params.timeunit)
        out.write_info('tstamp', tstamp)

        for stn1 in stlist:
            # rejected stations are no longer candidates
            FFT1 = cache.get_or_compute(stn1) if stn1 in stations else None
            if FFT1 is None:
                cache.release(stn1)
                continue
            # end if

            for stn2 in stations[stations.index(stn1):]:
                ct = get_corrtype(stn1, stn2)
                if ct not in params.corrtype:
                    logger.debug('Skipping {} of {} and {}'.format(ct, stn1, stn2))
                    continue
                # end if

                if ct == 'acorr':
                    FFT2 = FFT1
                else:
                    FFT2 = cache.get_or_compute(stn2)
                    if FFT2 is None: continue
                # end if

                name = pair_name(stn1, stn2)
                try:
                    xcorr = correlate(FFT1, FFT2, stn1, stn2, params.maxtimelag,
                                      corrmethod=params.corrmethod,
                                      half_win=params.half_win,
                                      water_level=params.water_level,
                                      stack_result=params.allstack,
                                      stacktype=params.stacktype)
                    out.write_corr(name, xcorr)
                except Exception as e:
                    # isolates the pair only; recorded against the source station,
                    # which is never revisited after this row
                    errors.add(stn1, 'no correlation written for {} ({})'.format(name, e))
                # end try
            # end for

            # release memory held by the FFT and time series for this station
            cache.release(stn1)
            memTracker.update()
        # end for

        out.write_errors(errors)
    # end with

    logger.info('{}: Done; {} failure(s) recorded'.format(tstamp, len(errors)))
    return errors
# end func

#!/usr/bin/env python
"""
Description:
    Third-order (C3) correlations. For every pair of first-order station-pairs that
    share exactly one station, the shared station acts as a virtual source: the coda
    of its correlation functions with the two remaining stations (receivers) is
    partitioned into negative- and positive-lag windows, and the windows are
    cross-correlated receiver against receiver.

References:
    Stehly, L., et al. (2008), Reconstructing Green's function by correlation of the
    coda of the correlation (C3) of ambient seismic noise, JGR 113(B11).

CreationDate:   07/03/19

Revision History:
    LastUpdate:     07/03/19   C3 driver
    LastUpdate:     14/03/19   Cache coda spectra per virtual source and receiver
    LastUpdate:     22/10/19   Record failed loads instead of terminating
    LastUpdate:     05/11/19   Out-of-range coda windows abort the timestamp; truncate output
"""

import logging

from seisxcorrelation.xcorqc.cache import FFTCache
from seisxcorrelation.xcorqc.correlation import stack, distance_km
from seisxcorrelation.xcorqc.io import OutputStore
from seisxcorrelation.xcorqc.pairing import get_corrtype, pair_name, split_pair_name
from seisxcorrelation.xcorqc.partition import partition, compute_fft_c3, compute_cc_c3
from seisxcorrelation.xcorqc.utils import ErrorList, MemoryTracker

log = logging.getLogger(__name__)

SKIP_NOT_TRIPLE = 'not-triple'
SKIP_NOT_XCORR = 'not-xcorr'
SKIP_NOT_ALLOWED = 'not-allowed'
PROCESS = 'process'


def classify_pair_of_pairs(pair1, pair2, allowable_vs, allowable_pairs):
    """
    Decides whether two station-pairs form a virtual-source triple to be processed

    :param pair1: (stnA, stnB)
    :param pair2: (stnC, stnD)
    :param allowable_vs: collection of stations allowed as virtual sources
    :param allowable_pairs: collection of receiver pair names allowed, in either order
    :return: (state, (vs, stn1, stn2)); the triple is None for SKIP_NOT_TRIPLE
    """
    if pair1[0] == pair1[1] or pair2[0] == pair2[1]:
        return SKIP_NOT_TRIPLE, None
    # end if

    common = set(pair1) & set(pair2)
    if len(common) != 1:
        return SKIP_NOT_TRIPLE, None
    # end if

    vs = common.pop()
    stn1 = pair1[1] if pair1[0] == vs else pair1[0]
    stn2 = pair2[1] if pair2[0] == vs else pair2[0]
    triple = (vs, stn1, stn2)

    if get_corrtype(stn1, stn2) != 'xcorr':
        return SKIP_NOT_XCORR, triple
    # end if
    if vs not in allowable_vs:
        return SKIP_NOT_ALLOWED, triple
    # end if
    if pair_name(stn1, stn2) not in allowable_pairs and \
       pair_name(stn2, stn1) not in allowable_pairs:
        return SKIP_NOT_ALLOWED, triple
    # end if

    return PROCESS, triple
# end func


def _coda_spectra(data, tstamp, vs, rcv, params, start_lag, win_len):
    """
    Loads the first-order correlation of vs and rcv, orients it with vs as source,
    partitions its coda and returns the spectra of the [neg, pos] windows, along
    with the location of vs

    :raises KeyError: if no first-order correlation of vs and rcv is available
    :raises ValueError: if the partition windows exceed the correlation function
    """
    for name in (pair_name(vs, rcv), pair_name(rcv, vs)):
        key = '{}/{}'.format(tstamp, name)
        if key in data: break
    else:
        raise KeyError('No first-order correlation found for {} and {}'.format(vs, rcv))
    # end for

    # work on a copy; the working set may serve other triples
    xcorr = data[key].copy()
    if xcorr.nwin > 1:
        xcorr = stack(xcorr, stacktype=params.stacktype)
    # end if

    corr = xcorr.corr[:, 0]
    if split_pair_name(name)[1] == vs:
        # stored as rcv-vs; reverse lag axis to get vs-rcv
        corr = corr[::-1]
    # end if

    rcv_loc = xcorr.misc['location'][rcv]
    vs_loc = xcorr.misc['location'][vs]

    neg, pos = partition(corr, start_lag, win_len)
    spectra = [compute_fft_c3(w, rcv, rcv_loc, params.freqmin, params.freqmax, xcorr.fs)
               for w in (neg, pos)]
    return spectra, vs_loc
# end func


def seisxcorrelation_highorder(data, tstamp, corrstationlist, allowable_pairs, allowable_vs,
                               params, logger=None):
    """
    Computes C3 correlations for a timestamp and writes them to
    '<basefoname>.<tstamp>.h5' under 'tstamp/stn1.stn2/vs', each entry holding the
    'neg' and 'pos' coda correlations.

    :param data: working set of first-order CorrData keyed by 'tstamp/stn1.stn2'
    :param tstamp: timestamp to process
    :param corrstationlist: sequence of first-order station-pairs (stnA, stnB)
    :param allowable_pairs: receiver pair names to process
    :param allowable_vs: stations allowed as virtual sources
    :param params: Config loaded with high_order=True
    :param logger: logger; defaults to the module logger
    :return: ErrorList of failed entries
    """
    logger = logger if logger else log

    corrstationlist = [tuple(p) for p in corrstationlist]
    allowable_pairs = set(allowable_pairs)
    allowable_vs = set(allowable_vs)
    start_lag = params.to_samples(params.start_lag)
    win_len = params.to_samples(params.window_len)

    errors = ErrorList(tstamp, logger)
    cache = FFTCache()
    memTracker = MemoryTracker(logger=logger)

    n = len(corrstationlist)
    with OutputStore(params.basefoname, tstamp, mode='w') as out:
        out.write_info('corrstationlist', [pair_name(a, b) for a, b in corrstationlist])
        out.write_info('tstamp', tstamp)

        logger.info('{}: Computing C3 correlations over {} station-pairs'.format(tstamp, n))
        for p1 in range(n):
            pair1 = corrstationlist[p1]
            for p2 in range(p1, n):
                state, triple = classify_pair_of_pairs(pair1, corrstationlist[p2],
                                                       allowable_vs, allowable_pairs)
                if state != PROCESS:
                    if state != SKIP_NOT_TRIPLE:
                        logger.debug('Skipping {} ({})'.format(triple, state))
                    # end if
                    continue
                # end if

                vs, stn1, stn2 = triple
                entry = '{}/{}'.format(pair_name(stn1, stn2), vs)
                if errors.failed(entry): continue

                try:
                    coda = []
                    for rcv in (stn1, stn2):
                        # cached as (spectra, vs location)
                        ckey = '{}/{}'.format(vs, rcv)
                        result = cache.get(ckey)
                        if result is None:
                            result = _coda_spectra(data, tstamp, vs, rcv, params,
                                                   start_lag, win_len)
                            cache.put(ckey, result)
                        # end if
                        coda.append(result)
                    # end for
                except ValueError:
                    # partition windows out of range: a configuration error
                    raise
                except Exception as e:
                    errors.add(entry, 'failed to load coda ({})'.format(e))
                    continue
                # end try

                ((F1_neg, F1_pos), vs_loc), ((F2_neg, F2_pos), _) = coda
                try:
                    result = []
                    for suffix, F1, F2 in (('neg', F1_neg, F2_neg), ('pos', F1_pos, F2_pos)):
                        C = compute_cc_c3(F1, F2, params.maxtimelag)
                        C.name = '{}.{}.{}_{}'.format(stn1, stn2, vs, suffix)
                        C.misc['dist'] = distance_km(F1.loc, F2.loc)
                        C.misc['location'] = {stn1: F1.loc, stn2: F2.loc, vs: vs_loc}
                        if params.allstack:
                            C = stack(C, stacktype=params.stacktype)
                        # end if
                        result.append(C)
                    # end for
                    out.write_corr_pair(entry, *result)
                except Exception as e:
                    errors.add(entry, 'no correlation written ({})'.format(e))
                # end try
            # end for

            # spectra derived from pair1 are not needed by later rows
            a, b = pair1
            cache.evict('{}/{}'.format(a, b))
            cache.evict('{}/{}'.format(b, a))
            for name in (pair_name(a, b), pair_name(b, a)):
                key = '{}/{}'.format(tstamp, name)
                if key in data:
                    del data[key]
                # end if
            # end for
            memTracker.update()
        # end for

        out.write_errors(errors)
    # end with

    logger.info('{}: Done; {} failure(s) recorded'.format(tstamp, len(errors)))
    return errors
# end func

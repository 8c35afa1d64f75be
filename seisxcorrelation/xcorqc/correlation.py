#!/usr/bin/env python
"""
Description:
    Cross-correlation of station spectra, with optional coherence or deconvolution
    normalization, and stacking of correlation windows.

References:
    Pavlis, G. L., & Vernon, F. L. (2010), Array processing of teleseismic body waves
    with the USArray, Computers & Geosciences, 36(7).
    Schimmel, M., & Paulssen, H. (1997), Noise reduction and detection of weak,
    coherent signals through phase-weighted stacks, GJI 130(2).
    Millet, F. et al. (2019), Multimode 3-D Kirchhoff migration of receiver functions
    at continental scale, JGR 124(8).

CreationDate:   04/02/19

Revision History:
    LastUpdate:     04/02/19   Cross-correlation of cached spectra
    LastUpdate:     03/04/19   Coherence and deconvolution strategies
    LastUpdate:     16/05/19   Robust, phase-weighted and nth-root stacking
"""

import logging

import numpy as np
from scipy.signal import hilbert
from scipy.fft import next_fast_len
from obspy.geodetics.base import gps2dist_azimuth

from seisxcorrelation.xcorqc.fft import irfft, lag_indices
from seisxcorrelation.xcorqc.noise import CorrData, coherence, deconvolution

log = logging.getLogger(__name__)


class CorrelationException(Exception):
    pass
# end class


def _raw_strategy(F1, F2, half_win, water_level):
    return F1, F2
# end func


def _coherence_strategy(F1, F2, half_win, water_level):
    return coherence(F1, half_win, water_level), coherence(F2, half_win, water_level)
# end func


def _deconv_strategy(F1, F2, half_win, water_level):
    return deconvolution(F1, F2, half_win, water_level), F2
# end func


# Pre-correlation transforms, keyed by correlation method. Each returns the pair of
# spectra to be correlated and never modifies its inputs.
CORRELATION_STRATEGIES = {'cross-correlation': _raw_strategy,
                          'coherence': _coherence_strategy,
                          'deconv': _deconv_strategy}


def get_strategy(corrmethod):
    try:
        return CORRELATION_STRATEGIES[corrmethod]
    except KeyError:
        raise ValueError('Invalid correlation method {}; must be one of {}'.format(
                         corrmethod, list(CORRELATION_STRATEGIES.keys())))
    # end try
# end func


def correlate_spectra(fft1, fft2, npts, maxlag):
    """
    Cross-correlates spectra column-wise

    :param fft1: rfft of source windows
    :param fft2: rfft of receiver windows
    :param npts: number of time-domain samples per window
    :param maxlag: maximum lag in samples
    :return: (correlations with lags [-maxlag, maxlag] along rows, lags); fewer lags
             are returned when maxlag exceeds the window
    """
    corrT = irfft(np.conj(fft1) * fft2, npts, axis=0)
    ind, lags = lag_indices(npts, maxlag)
    return corrT[ind, :], lags
# end func


def compute_cc(F1, F2, maxtimelag, corr_type='cross-correlation'):
    """
    Cross-correlates the windows common to two FFTData

    :param F1: source FFTData
    :param F2: receiver FFTData
    :param maxtimelag: maximum lag (s)
    :param corr_type: correlation method, recorded in the result
    :return: CorrData
    """
    if F1.fs != F2.fs or F1.npts != F2.npts:
        raise CorrelationException('Incompatible spectra for {}-{}: fs {} vs {}, '
                                   'npts {} vs {}'.format(F1.name, F2.name, F1.fs, F2.fs,
                                                          F1.npts, F2.npts))
    # end if

    tcorr, ind1, ind2 = np.intersect1d(F1.t, F2.t, return_indices=True)
    if tcorr.shape[0] == 0:
        raise CorrelationException('No common windows for {}-{}'.format(F1.name, F2.name))
    # end if

    maxlag = int(round(maxtimelag * F1.fs))
    corr, lags = correlate_spectra(F1.fft[:, ind1], F2.fft[:, ind2], F1.npts, maxlag)

    return CorrData('{}.{}'.format(F1.name, F2.name), F1.fs, lags.max() / F1.fs, corr,
                    t=tcorr, corr_type=corr_type, cc_len=F1.cc_len, cc_step=F1.cc_step,
                    freqmin=max(F1.freqmin, F2.freqmin), freqmax=min(F1.freqmax, F2.freqmax),
                    whitened=F1.whitened and F2.whitened, time_norm=F1.time_norm)
# end func


def distance_km(loc1, loc2):
    dist, _, _ = gps2dist_azimuth(loc1.lat, loc1.lon, loc2.lat, loc2.lon)
    return dist / 1e3
# end func


def correlate(F1, F2, stn1, stn2, maxtimelag, corrmethod='cross-correlation',
              half_win=0, water_level=0., stack_result=False, stacktype='mean'):
    """
    Correlates F1 (source) against F2 (receiver) using the given correlation method
    and attaches inter-station distance and station locations to the result.

    :return: CorrData
    :raises CorrelationException: if the spectra share no windows
    """
    strategy = get_strategy(corrmethod)
    try:
        G1, G2 = strategy(F1, F2, half_win, water_level)
    except ValueError as e:
        raise CorrelationException(str(e))
    # end try

    C = compute_cc(G1, G2, maxtimelag, corr_type=corrmethod)
    C.name = '{}.{}'.format(stn1, stn2)
    C.misc['dist'] = distance_km(F1.loc, F2.loc)
    C.misc['location'] = {stn1: F1.loc, stn2: F2.loc}

    if stack_result:
        C = stack(C, stacktype=stacktype)
    # end if
    return C
# end func


def robust_stack(cc_array, epsilon=1e-5, max_iterations=10):
    """
    Robust stack of Pavlis and Vernon (2010); rows of cc_array are the traces
    """
    w = np.ones(cc_array.shape[0])
    newstack = np.median(cc_array, axis=0)
    for _ in range(max_iterations):
        current = newstack
        for i in range(cc_array.shape[0]):
            crap_dot = np.sum(current * cc_array[i, :])
            di_norm = np.linalg.norm(cc_array[i, :])
            ri_norm = np.linalg.norm(cc_array[i, :] - crap_dot * current)
            w[i] = np.abs(crap_dot) / di_norm / ri_norm if di_norm * ri_norm > 0 else 0.
        # end for
        if np.sum(w) == 0: return np.mean(cc_array, axis=0)

        w = w / np.sum(w)
        newstack = np.sum((w * cc_array.T).T, axis=0)
        res = np.linalg.norm(newstack - current, ord=1) / np.linalg.norm(newstack) / cc_array.shape[0]
        if res < epsilon: break
    # end for
    return newstack
# end func


def pws(cc_array, power=2):
    """
    Phase-weighted stack of Schimmel and Paulssen (1997); rows of cc_array are the traces
    """
    N, M = cc_array.shape
    analytic = hilbert(cc_array, axis=1, N=next_fast_len(M))[:, :M]
    phase_stack = np.abs(np.mean(np.exp(1j * np.angle(analytic)), axis=0)) ** power
    return np.mean(cc_array * phase_stack, axis=0)
# end func


def nroot_stack(cc_array, power=2):
    """
    nth-root stack (Millet et al., 2019); rows of cc_array are the traces
    """
    dout = np.mean(np.sign(cc_array) * np.abs(cc_array) ** (1. / power), axis=0)
    return dout * np.abs(dout) ** (power - 1)
# end func


STACKING_RULES = {'mean': lambda a: np.mean(a, axis=0),
                  'robust': robust_stack,
                  'pws': pws,
                  'nroot': nroot_stack}


def stack(C, stacktype='mean'):
    """
    Collapses the correlation windows of C into a single stacked window. Returns C
    itself if it holds a single window; otherwise a stacked copy.
    """
    if stacktype not in STACKING_RULES:
        raise ValueError('Invalid stacking rule {}; must be one of {}'.format(
                         stacktype, list(STACKING_RULES.keys())))
    # end if
    if C.nwin == 1: return C

    result = C.copy()
    # stacking rules operate on traces along rows
    stacked = STACKING_RULES[stacktype](np.asarray(C.corr).T)
    result.corr = np.asarray(stacked, dtype=C.corr.dtype)[:, None]
    result.t = C.t[:1]
    result.misc['nstacked'] = C.nwin
    result.misc['stacktype'] = stacktype
    return result
# end func

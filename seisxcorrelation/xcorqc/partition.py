"""
Description:
    Splits first-order cross-correlation functions into negative- and positive-lag coda
    windows and transforms them for use as input to third-order (C3) correlations

CreationDate:   07/03/19

Revision History:
    LastUpdate:     07/03/19   Coda partitioning and spectra of coda windows
"""

import numpy as np
from scipy import signal
from obspy.signal.filter import bandpass

from seisxcorrelation.xcorqc.fft import rfft
from seisxcorrelation.xcorqc.noise import FFTData, taper_window
from seisxcorrelation.xcorqc.correlation import compute_cc


def partition(corr, start_lag, win_len):
    """
    Extracts coda windows on either side of zero lag

    :param corr: single-window correlation function; zero lag is at len(corr)//2
    :param start_lag: offset (samples) of each window from zero lag
    :param win_len: window length (samples)
    :return: (neg, pos), where neg spans [c - start_lag - win_len, c - start_lag) and
             pos spans [c + start_lag, c + start_lag + win_len), c being the zero-lag index
    :raises ValueError: if either window falls outside corr
    """
    corr = np.asarray(corr)
    if corr.ndim == 2:
        if corr.shape[1] != 1:
            raise ValueError('Expected a single correlation window, got {}'.format(corr.shape[1]))
        corr = corr[:, 0]
    # end if

    start_lag = int(start_lag)
    win_len = int(win_len)
    if win_len <= 0 or start_lag < 0:
        raise ValueError('Invalid partition: start_lag={}, win_len={}'.format(start_lag, win_len))
    # end if

    n = corr.shape[0]
    c = n // 2
    if c - start_lag - win_len < 0 or c + start_lag + win_len > n:
        raise ValueError('Partition windows (start_lag={}, win_len={}) exceed correlation '
                         'function of {} samples'.format(start_lag, win_len, n))
    # end if

    neg = corr[c - start_lag - win_len:c - start_lag].copy()
    pos = corr[c + start_lag:c + start_lag + win_len].copy()
    return neg, pos
# end func


class _CodaWindow:
    """Minimal RawData-like holder for a single coda window"""

    def __init__(self, name, loc, fs, x, freqmin, freqmax):
        self.name = name
        self.loc = loc
        self.fs = fs
        self.cc_len = x.shape[0] / fs
        self.cc_step = self.cc_len
        self.freqmin = freqmin
        self.freqmax = freqmax
        self.whitened = False
        self.time_norm = 'none'
        self.t = np.zeros(1)
        self.x = x[:, None]
    # end func
# end class


def compute_fft_c3(window, name, loc, freqmin, freqmax, fs, taper_fraction=0.05):
    """
    Spectrum of a coda window: detrend, taper, bandpass (when freqmax is below
    Nyquist) and forward FFT

    :param window: 1D coda window
    :param name: receiver name for the spectrum
    :param loc: GeoLoc of the receiver
    :return: FFTData holding a single window at time 0
    """
    x = signal.detrend(np.asarray(window, dtype='f8'))
    x = x * taper_window(x.shape[0], int(np.round(taper_fraction * x.shape[0])))
    if 0 < freqmin < freqmax < fs / 2.:
        x = bandpass(x, freqmin, freqmax, fs, corners=2, zerophase=True)
    # end if

    R = _CodaWindow(name, loc, float(fs), x, freqmin, freqmax)
    return FFTData(R, rfft(R.x, axis=0))
# end func


def compute_cc_c3(F1, F2, maxtimelag):
    return compute_cc(F1, F2, maxtimelag, corr_type='C3')
# end func

#!/usr/bin/env python
"""
Description:
    Containers and preprocessing routines for ambient-noise cross-correlation: raw
    station records, windowed time-series, their spectra and the resulting
    cross-correlation functions, along with the time- and frequency-domain
    operations applied to them before correlation.

References:
    Bensen et al. (2007), Processing seismic ambient noise data to obtain reliable
    broad-band surface wave dispersion measurements, GJI 169(3).

CreationDate:   14/02/19

Revision History:
    LastUpdate:     14/02/19   Containers and windowing
    LastUpdate:     03/04/19   Added coherence and deconvolution normalizations
"""

import copy
import math
import logging

import numpy as np
from scipy import signal
from scipy.ndimage import uniform_filter1d
from obspy import Trace
from obspy.core import Stats
from obspy.signal.filter import lowpass

from seisxcorrelation.xcorqc.fft import rfft

log = logging.getLogger(__name__)


class GeoLoc:
    """Station location; latitude and longitude in degrees, elevation in metres"""

    def __init__(self, lat=0., lon=0., el=0.):
        self.lat = float(lat)
        self.lon = float(lon)
        self.el = float(el)
    # end func

    def as_array(self):
        return np.array([self.lat, self.lon, self.el])
    # end func

    @classmethod
    def from_array(cls, arr):
        return cls(*[float(v) for v in arr[:3]])
    # end func

    def __eq__(self, other):
        return isinstance(other, GeoLoc) and \
               np.allclose(self.as_array(), other.as_array())
    # end func

    def __repr__(self):
        return 'GeoLoc(lat={}, lon={}, el={})'.format(self.lat, self.lon, self.el)
    # end func
# end class


class RawChannel:
    """
    A single channel's time-series for one timestamp.

    :param id: NET.STA.LOC.CHA
    :param fs: sampling rate (Hz)
    :param x: samples
    :param t: sample-validity table; a 2D integer array with one [start, end] row
              per sample-index range
    :param loc: GeoLoc of the station
    :param misc: quality flags and other metadata, e.g. {'dlerror': 0}
    :param starttime: start time of the record as a POSIX timestamp
    """

    def __init__(self, id, fs, x, t=None, loc=None, misc=None, starttime=0.):
        self.id = id
        self.fs = float(fs)
        self.x = np.asarray(x)
        if t is None:
            t = [[0, max(len(self.x) - 1, 0)]]
        # end if
        self.t = np.asarray(t, dtype='i8').reshape(-1, 2)
        self.loc = loc if loc is not None else GeoLoc()
        self.misc = dict(misc) if misc else {}
        self.starttime = float(starttime)
    # end func

    def copy(self):
        return copy.deepcopy(self)
    # end func
# end class


class RawData:
    """
    Time-series of a RawChannel cut into windows of cc_len seconds, advancing by
    cc_step seconds. Windows are stored as columns of x.
    """

    def __init__(self, channel, cc_len, cc_step):
        self.name = channel.id
        self.loc = channel.loc
        self.fs = channel.fs
        self.cc_len = float(cc_len)
        self.cc_step = float(cc_step)
        self.freqmin = 0.
        self.freqmax = self.fs / 2.
        self.whitened = False
        self.time_norm = 'none'

        win_npts = int(round(self.cc_len * self.fs))
        step_npts = int(round(self.cc_step * self.fs))
        npts = channel.x.shape[0]
        if win_npts < 2 or step_npts < 1:
            raise ValueError('Window length ({}) and step ({}) too short at {} Hz'.format(
                             cc_len, cc_step, self.fs))
        if npts < win_npts:
            raise ValueError('{}: record of {} samples is shorter than a window of {} '
                             'samples'.format(self.name, npts, win_npts))
        # end if

        nwin = (npts - win_npts) // step_npts + 1
        starts = np.arange(nwin) * step_npts
        self.x = np.stack([np.asarray(channel.x[s:s + win_npts], dtype='f8')
                           for s in starts], axis=1)
        self.t = channel.starttime + starts / self.fs
    # end func
# end class


class FFTData:
    """Spectra (rfft) of the windows of a RawData; one column per window"""

    def __init__(self, raw, fft):
        self.name = raw.name
        self.loc = raw.loc
        self.fs = raw.fs
        self.cc_len = raw.cc_len
        self.cc_step = raw.cc_step
        self.freqmin = raw.freqmin
        self.freqmax = raw.freqmax
        self.whitened = raw.whitened
        self.time_norm = raw.time_norm
        self.corr_norm = 'none'
        self.t = np.array(raw.t, dtype='f8')
        self.fft = fft
    # end func

    @property
    def npts(self):
        """Number of time-domain samples per window"""
        return int(round(self.cc_len * self.fs))
    # end func

    def copy(self):
        return copy.deepcopy(self)
    # end func
# end class


class CorrData:
    """
    Cross-correlation functions for a station-pair. corr has one column per
    correlated window, with lags running from -maxlag to +maxlag seconds along
    the rows; misc carries the inter-station distance ('dist', km) and station
    locations ('location', {station: GeoLoc}).
    """

    def __init__(self, name, fs, maxlag, corr, t=None, corr_type='cross-correlation',
                 cc_len=0., cc_step=0., freqmin=0., freqmax=0., whitened=False,
                 time_norm='none', misc=None):
        self.name = name
        self.fs = float(fs)
        self.maxlag = float(maxlag)
        self.corr = np.asarray(corr)
        if self.corr.ndim == 1:
            self.corr = self.corr[:, None]
        # end if
        self.t = np.zeros(self.corr.shape[1]) if t is None else np.asarray(t, dtype='f8')
        self.corr_type = corr_type
        self.cc_len = float(cc_len)
        self.cc_step = float(cc_step)
        self.freqmin = float(freqmin)
        self.freqmax = float(freqmax)
        self.whitened = bool(whitened)
        self.time_norm = time_norm
        self.misc = dict(misc) if misc else {}
    # end func

    @property
    def nwin(self):
        return self.corr.shape[1]
    # end func

    def lags(self):
        """Lag times (s) for the rows of corr"""
        n = self.corr.shape[0]
        return (np.arange(n) - n // 2) / self.fs
    # end func

    def copy(self):
        return copy.deepcopy(self)
    # end func
# end class


def process_raw(channel, fs):
    """
    Demeans and detrends a copy of the channel and, if its sampling rate differs
    from fs, applies an anti-alias lowpass before resampling it to fs.
    """
    result = channel.copy()
    x = np.array(result.x, dtype='f8')
    x -= np.mean(x)
    x = signal.detrend(x)

    if not math.isclose(result.fs, fs):
        if fs < result.fs:
            x = lowpass(x, fs / 2., result.fs, corners=2, zerophase=True)
        # end if
        tr = Trace(data=x, header=Stats(header={'sampling_rate': result.fs,
                                                'npts': len(x)}))
        x = tr.resample(fs, no_filter=True).data
        result.t = np.floor(result.t * (fs / result.fs)).astype('i8')
        result.fs = float(fs)
    # end if

    result.x = x
    return result
# end func


def detrend(R):
    R.x = signal.detrend(R.x, axis=0, type='linear')
    return R
# end func


def taper_window(npts, taperlen):
    """Cosine taper weights of length npts with taperlen samples tapered at each end"""
    w = np.ones(npts)
    if taperlen > 0:
        w[0:taperlen] *= 0.5 * (1 + np.cos(np.linspace(-math.pi, 0, taperlen)))
        w[-taperlen:] *= 0.5 * (1 + np.cos(np.linspace(0, math.pi, taperlen)))
    # end if
    return w
# end func


def taper(R, max_percentage=0.05):
    npts = R.x.shape[0]
    w = taper_window(npts, int(np.round(max_percentage * npts)))
    R.x = R.x * w[:, None]
    return R
# end func


def onebit(R):
    R.x = np.sign(R.x)
    return R
# end func


def compute_fft(R):
    return FFTData(R, rfft(R.x, axis=0))
# end func


def whiten(F, freqmin, freqmax, pad=50):
    """
    Spectral whitening: flattens the amplitude spectrum within [freqmin, freqmax],
    with cosine tapers over pad frequency bins on either side of the band and zeros
    elsewhere. Phase is preserved.
    """
    freqs = np.fft.rfftfreq(F.npts, 1. / F.fs)
    nf = freqs.shape[0]
    band = np.where((freqs >= freqmin) & (freqs <= freqmax))[0]
    if band.shape[0] == 0:
        raise ValueError('No frequency bins in [{}, {}] Hz'.format(freqmin, freqmax))
    # end if

    i1, i2 = band[0], band[-1]
    weights = np.zeros(nf)
    weights[i1:i2 + 1] = 1.
    left = np.arange(max(i1 - pad, 0), i1)
    right = np.arange(i2 + 1, min(i2 + 1 + pad, nf))
    if left.shape[0]:
        weights[left] = np.cos(np.linspace(math.pi / 2., 0, left.shape[0] + 1)[:-1]) ** 2
    if right.shape[0]:
        weights[right] = np.cos(np.linspace(0, math.pi / 2., right.shape[0] + 1)[1:]) ** 2

    amp = np.abs(F.fft)
    unit = np.divide(F.fft, amp, out=np.zeros_like(F.fft), where=amp > 0)
    F.fft = unit * weights[:, None]
    F.whitened = True
    return F
# end func


def phase_normalize(F):
    amp = np.abs(F.fft)
    F.fft = np.divide(F.fft, amp, out=np.zeros_like(F.fft), where=amp > 0)
    return F
# end func


def smooth(A, half_win):
    """Moving average over 2*half_win+1 frequency bins, along each column"""
    if half_win <= 0:
        return A
    return uniform_filter1d(A, size=2 * half_win + 1, axis=0, mode='nearest')
# end func


def coherence(F, half_win, water_level):
    """
    Returns a copy of F with its spectrum divided by its smoothed amplitude
    spectrum; amplitudes below water_level times the mean amplitude of each window
    are raised to that level.
    """
    result = F.copy()
    amp = smooth(np.abs(result.fft), half_win)
    wl = water_level * np.mean(amp, axis=0)
    result.fft = result.fft / np.maximum(amp, wl[None, :])
    result.corr_norm = 'coherence'
    return result
# end func


def deconvolution(F1, F2, half_win, water_level):
    """
    Returns a copy of F1, restricted to the windows it shares with F2, with its
    spectrum divided by the smoothed power spectrum of F2. Power below water_level
    times the mean power of each window is raised to that level.
    """
    common, ind1, ind2 = np.intersect1d(F1.t, F2.t, return_indices=True)
    if common.shape[0] == 0:
        raise ValueError('No common windows for {}-{}'.format(F1.name, F2.name))
    # end if

    result = F1.copy()
    power = smooth(np.abs(F2.fft[:, ind2]), half_win) ** 2
    wl = water_level * np.mean(power, axis=0)
    result.fft = result.fft[:, ind1] / np.maximum(power, wl[None, :])
    result.t = result.t[ind1]
    result.corr_norm = 'deconv'
    return result
# end func


def compute_station_fft(channel, params):
    """
    Default transform from a quality-checked RawChannel to its FFTData:
    preprocess, window, detrend, taper, optional one-bit normalization, forward
    FFT, optional whitening and optional phase normalization.

    :param channel: RawChannel
    :param params: Config (or equivalent) providing fs, cc_len, cc_step, freqmin,
                   freqmax, to_whiten and time_norm
    :return: FFTData
    """
    S = process_raw(channel, params.fs)
    R = RawData(S, params.cc_len, params.cc_step)
    R.freqmin = params.freqmin
    R.freqmax = params.freqmax
    R.whitened = params.to_whiten
    R.time_norm = params.time_norm

    detrend(R)
    taper(R)

    if params.time_norm == 'one-bit':
        onebit(R)
    # end if

    F = compute_fft(R)
    if params.to_whiten:
        whiten(F, params.freqmin, params.freqmax)
    # end if
    if params.time_norm == 'phase':
        phase_normalize(F)
    # end if
    return F
# end func

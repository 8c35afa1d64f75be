"""
Description:
    Per-timestamp caches of station spectra. Spectra are computed once per station and
    reused across every station-pair the station takes part in; entries are evicted
    explicitly once they are no longer needed, so that memory usage is bounded by the
    number of stations still pending.

CreationDate:   28/01/19

Revision History:
    LastUpdate:     28/01/19   Station spectra cache
    LastUpdate:     07/03/19   Generic keyed cache for high-order correlations
"""

import logging

from seisxcorrelation.xcorqc.noise import compute_station_fft
from seisxcorrelation.xcorqc.quality import check_channel, expected_npts

log = logging.getLogger(__name__)


class FFTCache:
    """Mapping of keys to spectra with explicit eviction"""

    def __init__(self):
        self._entries = {}
        self.hits = 0
        self.misses = 0
    # end func

    def get(self, key):
        result = self._entries.get(key)
        if result is None:
            self.misses += 1
        else:
            self.hits += 1
        # end if
        return result
    # end func

    def put(self, key, value):
        self._entries[key] = value
    # end func

    def evict(self, key):
        """Removes key; returns True if it was present"""
        return self._entries.pop(key, None) is not None
    # end func

    def keys(self):
        return list(self._entries.keys())
    # end func

    def __contains__(self, key):
        return key in self._entries
    # end func

    def __len__(self):
        return len(self._entries)
    # end func
# end class


class StationFFTCache(FFTCache):
    """
    Station spectra for a single timestamp.

    :param tstamp: timestamp being processed
    :param data: working set of raw records, keyed by 'tstamp/station'
    :param stations: candidate stations (OrderedSet); failed stations are removed
    :param errors: ErrorList for the timestamp
    :param params: Config providing timeunit and the transform parameters
    :param transform: callable(RawChannel, params) -> FFTData
    """

    def __init__(self, tstamp, data, stations, errors, params, transform=None, logger=None):
        super(StationFFTCache, self).__init__()
        self.tstamp = tstamp
        self.data = data
        self.stations = stations
        self.errors = errors
        self.params = params
        self.transform = transform if transform else compute_station_fft
        self.logger = logger if logger else log
    # end func

    def _reject(self, stn, reason):
        self.errors.add(stn, reason)
        self.stations.discard(stn)
        return None
    # end func

    def get_or_compute(self, stn):
        """
        Returns the cached spectrum for stn, computing it on a cache miss. A station
        that cannot be read, fails quality checks or cannot be transformed is
        recorded in the error list, dropped from the candidate stations and None is
        returned.
        """
        result = self.get(stn)
        if result is not None: return result
        if self.errors.failed(stn): return None

        key = '{}/{}'.format(self.tstamp, stn)
        try:
            channel = self.data[key]
        except Exception as e:
            return self._reject(stn, 'read error ({})'.format(e))
        # end try

        try:
            channel = check_channel(channel, expected_npts(self.params.timeunit, channel.fs))
        except Exception as e:
            return self._reject(stn, str(e))
        # end try

        try:
            self.logger.debug('Computing FFT for {}'.format(key))
            result = self.transform(channel, self.params)
        except Exception as e:
            return self._reject(stn, 'FFT error ({})'.format(e))
        # end try

        self.put(stn, result)
        return result
    # end func

    def release(self, stn):
        """Evicts the spectrum for stn and drops its raw record from the working set"""
        self.evict(stn)
        key = '{}/{}'.format(self.tstamp, stn)
        if key in self.data:
            del self.data[key]
        # end if
    # end func
# end class

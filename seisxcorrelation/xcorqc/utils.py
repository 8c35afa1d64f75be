import os
import logging
import numpy as np
import psutil

log = logging.getLogger(__name__)


class ErrorList:
    """
    Append-only, ordered record of failures within a timestamp, keyed as
    'tstamp/station' for first-order station and pair failures, or
    'tstamp/stn1.stn2/virtual_source' for third-order failures. One instance is
    owned by each timestamp being processed.
    """

    def __init__(self, tstamp, logger=None):
        self.tstamp = tstamp
        self.logger = logger if logger else log
        self._keys = []
        self._members = set()
    # end func

    def key(self, name):
        return '{}/{}'.format(self.tstamp, name)
    # end func

    def add(self, name, reason=''):
        """
        Records a failure for name (a station, pair or pair/virtual-source). Repeated
        failures of the same name are recorded once.
        """
        key = self.key(name)
        self.logger.warning('{} skipped: {}'.format(key, reason) if reason else '{} skipped'.format(key))
        if key in self._members: return key

        self._keys.append(key)
        self._members.add(key)
        return key
    # end func

    def failed(self, name):
        return self.key(name) in self._members
    # end func

    def __contains__(self, key):
        return key in self._members
    # end func

    def __iter__(self):
        return iter(self._keys)
    # end func

    def __len__(self):
        return len(self._keys)
    # end func

    def to_list(self):
        return list(self._keys)
    # end func
# end class


class MemoryTracker:
    def __init__(self, burnin_steps=7, outlier_factor=10, logger=None):
        assert burnin_steps > 1, 'Burnin-steps must be > 1'

        self.burnin_steps = burnin_steps
        self.outlier_factor = outlier_factor
        self.logger = logger if logger else log

        self.usage_mb = np.zeros(self.burnin_steps)
        self.usage_mb[-1] = self.current_usage_mb()
    # end func

    @staticmethod
    def current_usage_mb():
        return psutil.Process(os.getpid()).memory_info().rss / (1024 ** 2)
    # end func

    def update(self):
        """
        Records current memory usage and reports anomalously large usage, based on
        scaled median-absolute-deviations over the last burnin_steps updates. Returns
        the number of outliers found.
        """
        self.usage_mb[:-1] = self.usage_mb[1:]
        self.usage_mb[-1] = self.current_usage_mb()

        if(np.sum(self.usage_mb > 0) < self.burnin_steps): return 0

        med = np.median(self.usage_mb)
        d = np.abs(self.usage_mb - med)
        s = d / med if med else np.zeros(len(d))

        count = 0
        outlier_indices = np.where(s >= self.outlier_factor)[0]
        for oi in outlier_indices:
            # only report anomalously large outliers
            if(self.usage_mb[oi] > med):
                self.logger.warning('Anomalous memory usage detected: median({:3.2f} MB), current({:3.2f} MB)'.
                                    format(med, self.usage_mb[oi]))
                count += 1
            # end if
        # end for
        return count
    # end func
# end class

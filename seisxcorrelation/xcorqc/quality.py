"""
Description:
    Data-quality checks applied to raw channel records before they are transformed
    for cross-correlation

CreationDate:   21/01/19

Revision History:
    LastUpdate:     21/01/19   Download-error, zero-fraction and gap checks
    LastUpdate:     11/02/19   Length repair for records longer than a time-unit
"""

import numpy as np

MAX_ZERO_FRACTION = 0.5
MAX_VALIDITY_ROWS = 2


class QualityException(Exception):
    def __init__(self, reason, detail=''):
        super(QualityException, self).__init__('{}{}'.format(reason, ': ' + detail if detail else ''))
        self.reason = reason
    # end func
# end class


def expected_npts(timeunit, fs):
    return int(timeunit * fs)
# end func


def check_channel(channel, npts):
    """
    Checks a RawChannel, in order:
        1. records longer than npts are truncated, along with rows of the validity
           table that start beyond the new length
        2. rejected if the download-error flag is set
        3. rejected if more than half the samples are exactly zero
        4. rejected if the validity table has more than two rows, i.e. gaps

    :param channel: RawChannel
    :param npts: expected number of samples
    :return: RawChannel, truncated copy if the record was too long
    :raises QualityException: first check that fails
    """
    if channel.x.shape[0] > npts:
        channel = channel.copy()
        channel.x = channel.x[:npts]
        channel.t = channel.t[channel.t[:, 0] < npts, :]
    # end if

    # a missing flag means data were not fetched through a downloader
    if channel.misc.get('dlerror', False):
        raise QualityException('download error')
    # end if

    nsamples = channel.x.shape[0]
    nzeros = int(np.sum(channel.x == 0))
    if nzeros > MAX_ZERO_FRACTION * nsamples:
        raise QualityException('excess zeros', '{} of {} samples'.format(nzeros, nsamples))
    # end if

    nrows = channel.t.shape[0]
    if nrows > MAX_VALIDITY_ROWS:
        raise QualityException('gaps', '{} gaps'.format(nrows - MAX_VALIDITY_ROWS))
    # end if

    return channel
# end func

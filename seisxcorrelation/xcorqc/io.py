"""
Description:
    HDF5 storage for raw channel records and cross-correlation results. Input files
    hold raw records under 'tstamp/NET.STA.LOC.CHA'; one output file is written per
    timestamp, named '<basefoname>.<tstamp>.h5', holding:

        info/stationlist        ordered station list (first order)
        info/timeunit           seconds per record (first order)
        info/tstamp             timestamp
        info/corrstationlist    station-pairs used (high order)
        info/errors             failed stations/pairs
        tstamp/stn1.stn2        CorrData (first order)
        tstamp/stn1.stn2/vs     'neg' and 'pos' CorrData (high order)

CreationDate:   18/02/19

Revision History:
    LastUpdate:     18/02/19   HDF5 encoders for RawChannel and CorrData
    LastUpdate:     07/03/19   Lazy per-timestamp views of input files
"""

import logging
from collections.abc import MutableMapping

import h5py
import numpy as np

from seisxcorrelation.xcorqc.noise import RawChannel, CorrData, GeoLoc

log = logging.getLogger(__name__)

INFO_GROUP = 'info'
CORR_ATTRS = ('name', 'fs', 'maxlag', 'corr_type', 'cc_len', 'cc_step', 'freqmin',
              'freqmax', 'whitened', 'time_norm')


def _decode(v):
    return v.decode() if isinstance(v, bytes) else v
# end func


def _replace(h5, key):
    if key in h5:
        del h5[key]
    # end if
# end func


def write_raw_channel(h5, key, channel):
    _replace(h5, key)
    grp = h5.create_group(key)
    grp.create_dataset('x', data=channel.x)
    grp.create_dataset('t', data=channel.t)
    grp.attrs['id'] = channel.id
    grp.attrs['fs'] = channel.fs
    grp.attrs['starttime'] = channel.starttime
    grp.attrs['loc'] = channel.loc.as_array()
    misc = grp.create_group('misc')
    for k, v in channel.misc.items():
        misc.attrs[k] = v
    # end for
    return grp
# end func


def read_raw_channel(grp):
    misc = {k: _decode(v) for k, v in grp['misc'].attrs.items()} if 'misc' in grp else {}
    return RawChannel(_decode(grp.attrs['id']), grp.attrs['fs'], grp['x'][()],
                      t=grp['t'][()], loc=GeoLoc.from_array(grp.attrs['loc']),
                      misc=misc, starttime=grp.attrs['starttime'])
# end func


def write_corr(h5, key, C):
    _replace(h5, key)
    grp = h5.create_group(key)
    grp.create_dataset('corr', data=C.corr)
    grp.create_dataset('t', data=C.t)
    for k in CORR_ATTRS:
        grp.attrs[k] = getattr(C, k)
    # end for

    misc = grp.create_group('misc')
    for k, v in C.misc.items():
        if k == 'location':
            locgrp = misc.create_group('location')
            for stn, loc in v.items():
                locgrp.attrs[stn] = loc.as_array()
            # end for
        else:
            misc.attrs[k] = v
        # end if
    # end for
    return grp
# end func


def read_corr(grp):
    attrs = {k: _decode(grp.attrs[k]) for k in CORR_ATTRS}
    misc = {}
    if 'misc' in grp:
        misc = {k: _decode(v) for k, v in grp['misc'].attrs.items()}
        if 'location' in grp['misc']:
            misc['location'] = {stn: GeoLoc.from_array(v)
                                for stn, v in grp['misc']['location'].attrs.items()}
        # end if
    # end if
    return CorrData(attrs['name'], attrs['fs'], attrs['maxlag'], grp['corr'][()],
                    t=grp['t'][()], corr_type=attrs['corr_type'], cc_len=attrs['cc_len'],
                    cc_step=attrs['cc_step'], freqmin=attrs['freqmin'],
                    freqmax=attrs['freqmax'], whitened=bool(attrs['whitened']),
                    time_norm=attrs['time_norm'], misc=misc)
# end func


def write_strings(h5, key, values):
    _replace(h5, key)
    values = [str(v) for v in values]
    if len(values):
        h5.create_dataset(key, data=np.array(values, dtype=object), dtype=h5py.string_dtype())
    else:
        h5.create_dataset(key, shape=(0,), dtype=h5py.string_dtype())
    # end if
# end func


def read_strings(h5, key):
    return [_decode(v) for v in h5[key][()]]
# end func


def write_raw_channels(filename, tstamp, channels, mode='a'):
    """
    Writes raw records for a timestamp to an input file

    :param channels: dict of station name -> RawChannel
    """
    with h5py.File(filename, mode) as h5:
        for stn, channel in channels.items():
            write_raw_channel(h5, '{}/{}'.format(tstamp, stn), channel)
        # end for
    # end with
# end func


def list_timestamps(h5):
    return sorted(k for k in h5.keys() if k != INFO_GROUP)
# end func


class OutputStore:
    """
    Per-timestamp output file; use as a context manager. mode is passed to h5py.File:
    'w' replaces an existing file, 'a' adds to it.
    """

    def __init__(self, basefoname, tstamp, mode='a'):
        self.tstamp = tstamp
        self.filename = output_filename(basefoname, tstamp)
        self.mode = mode
        self.h5 = None
    # end func

    def __enter__(self):
        self.h5 = h5py.File(self.filename, self.mode)
        return self
    # end func

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
    # end func

    def close(self):
        if self.h5 is not None:
            self.h5.close()
            self.h5 = None
        # end if
    # end func

    def write_info(self, name, value):
        key = '{}/{}'.format(INFO_GROUP, name)
        if isinstance(value, (list, tuple)):
            write_strings(self.h5, key, value)
        else:
            _replace(self.h5, key)
            self.h5.create_dataset(key, data=value)
        # end if
    # end func

    def write_corr(self, name, C):
        write_corr(self.h5, '{}/{}'.format(self.tstamp, name), C)
    # end func

    def write_corr_pair(self, name, neg, pos):
        key = '{}/{}'.format(self.tstamp, name)
        _replace(self.h5, key)
        write_corr(self.h5, key + '/neg', neg)
        write_corr(self.h5, key + '/pos', pos)
    # end func

    def write_errors(self, errors):
        write_strings(self.h5, '{}/errors'.format(INFO_GROUP), list(errors))
    # end func
# end class


def output_filename(basefoname, tstamp):
    return '{}.{}.h5'.format(basefoname, tstamp)
# end func


class TimestampView(MutableMapping):
    """
    Working set of the entries of an input file under a timestamp, keyed as
    'tstamp/name'. Entries are read lazily; deleting a key releases it from the view
    without touching the file.

    :param h5: open h5py.File
    :param tstamp: timestamp group
    :param reader: callable turning an HDF5 group into a record
    """

    def __init__(self, h5, tstamp, reader=read_raw_channel):
        self._h5 = h5
        self.tstamp = tstamp
        self._reader = reader
        self._keys = ['{}/{}'.format(tstamp, k) for k in h5[tstamp].keys()] if tstamp in h5 else []
        self._live = set(self._keys)
        self._overrides = {}
    # end func

    def __getitem__(self, key):
        if key not in self._live:
            raise KeyError(key)
        # end if
        if key in self._overrides:
            return self._overrides[key]
        # end if
        return self._reader(self._h5[key])
    # end func

    def __setitem__(self, key, value):
        if key not in self._live:
            self._keys.append(key)
            self._live.add(key)
        # end if
        self._overrides[key] = value
    # end func

    def __delitem__(self, key):
        if key not in self._live:
            raise KeyError(key)
        # end if
        self._live.discard(key)
        self._overrides.pop(key, None)
    # end func

    def __iter__(self):
        return (k for k in self._keys if k in self._live)
    # end func

    def __len__(self):
        return len(self._live)
    # end func

    def __contains__(self, key):
        return key in self._live
    # end func
# end class

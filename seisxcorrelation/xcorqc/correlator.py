#!/bin/env python
"""
Description:
    Command-line entry points; computes first- and third-order cross-correlations for
    all timestamps of an input dataset in parallel, one timestamp per task

References:

CreationDate:   11/03/19

Revision History:
    LastUpdate:     11/03/19   first-order and high-order commands
    LastUpdate:     02/08/19   Per-timestamp log files
"""

import os
import glob
import logging

import click
import h5py
from mpi4py import MPI

from seisxcorrelation import pslog
from seisxcorrelation.config import Config, ConfigException
from seisxcorrelation.misc import get_git_revision_hash, setup_logger, split_list
from seisxcorrelation.xcorqc.highorder import seisxcorrelation_highorder
from seisxcorrelation.xcorqc.io import TimestampView, list_timestamps, read_corr, \
    read_strings, output_filename, INFO_GROUP
from seisxcorrelation.xcorqc.pairing import split_pair_name
from seisxcorrelation.xcorqc.xcorrelation import seisxcorrelation

log = logging.getLogger(__name__)


def _distribute(get_tasks):
    """
    Evaluates get_tasks on rank 0 and scatters the resulting list across ranks

    :return: (tasks for this rank, git-hash)
    """
    comm = MPI.COMM_WORLD
    nproc = comm.Get_size()
    rank = comm.Get_rank()

    proc_tasks = []
    git_hash = ''
    if rank == 0:
        git_hash = get_git_revision_hash()
        proc_tasks = split_list(get_tasks(), npartitions=nproc)
    # end if

    proc_tasks = comm.bcast(proc_tasks, root=0)
    git_hash = comm.bcast(git_hash, root=0)
    return proc_tasks[rank], git_hash
# end func


def _timestamp_logger(params, tstamp, git_hash):
    logger = setup_logger('seisxcorr.{}'.format(tstamp),
                          '{}.{}.log'.format(params.basefoname, tstamp))
    if git_hash: logger.info('Using git-hash: {}'.format(git_hash))
    return logger
# end func


def process_first_order(config_file, input_file):
    """
    :param config_file: YAML parameter file
    :param input_file: HDF5 file holding raw records under 'tstamp/NET.STA.LOC.CHA'
    """
    params = Config(config_file)

    def get_tasks():
        with h5py.File(input_file, 'r') as h5:
            return list_timestamps(h5)
        # end with
    # end func

    tstamps, git_hash = _distribute(get_tasks)
    for tstamp in tstamps:
        logger = _timestamp_logger(params, tstamp, git_hash)
        with h5py.File(input_file, 'r') as h5:
            data = TimestampView(h5, tstamp)
            seisxcorrelation(data, tstamp, params, logger=logger)
        # end with
        log.info('Completed {}'.format(tstamp))
    # end for
# end func


def first_order_files(input_prefix):
    """
    Finds first-order output files '<input_prefix>.<tstamp>.h5'. High-order outputs
    sharing the prefix, e.g. '<input_prefix>.c3.<tstamp>.h5', carry no station list
    and are skipped.

    :return: list of (tstamp, filename)
    """
    result = []
    for fn in sorted(glob.glob('{}.*.h5'.format(input_prefix))):
        with h5py.File(fn, 'r') as h5:
            key = '{}/tstamp'.format(INFO_GROUP)
            if key not in h5:
                log.warning('Ignoring {}: no timestamp found'.format(fn))
                continue
            # end if
            if '{}/stationlist'.format(INFO_GROUP) not in h5:
                log.info('Ignoring {}: not a first-order output'.format(fn))
                continue
            # end if
            tstamp = h5[key][()]
        # end with
        result.append((tstamp.decode() if isinstance(tstamp, bytes) else str(tstamp), fn))
    # end for
    return result
# end func


def process_high_order(config_file, input_prefix):
    """
    :param config_file: YAML parameter file including the C3 parameters
    :param input_prefix: basefoname used for the first-order run
    """
    params = Config(config_file, high_order=True)

    tasks, git_hash = _distribute(lambda: first_order_files(input_prefix))
    for tstamp, fn in tasks:
        if os.path.abspath(output_filename(params.basefoname, tstamp)) == os.path.abspath(fn):
            raise ConfigException('basefoname must differ from the input prefix; '
                                  '{} would be overwritten'.format(fn))
        # end if

        logger = _timestamp_logger(params, tstamp, git_hash)
        with h5py.File(fn, 'r') as h5:
            data = TimestampView(h5, tstamp, reader=read_corr)
            corrstationlist = [split_pair_name(k.split('/', 1)[1]) for k in data]

            errkey = '{}/errors'.format(INFO_GROUP)
            if errkey in h5:
                logger.info('{} first-order failure(s) in {}'.format(
                            len(read_strings(h5, errkey)), fn))
            # end if
            seisxcorrelation_highorder(data, tstamp, corrstationlist, params.allowable_pairs,
                                       params.allowable_vs, params, logger=logger)
        # end with
        log.info('Completed {}'.format(tstamp))
    # end for
# end func


@click.group()
@click.option('-v', '--verbosity',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']),
              default='INFO', help='Level of logging')
def cli(verbosity):
    pslog.configure(verbosity)
# end func


@cli.command('first-order')
@click.argument('config-file', type=click.Path(exists=True, dir_okay=False))
@click.argument('input-file', type=click.Path(exists=True, dir_okay=False))
def first_order(config_file, input_file):
    """
    CONFIG_FILE: YAML file of correlation parameters\n
    INPUT_FILE: HDF5 file of raw records, grouped by timestamp
    """
    process_first_order(config_file, input_file)
# end func


@cli.command('high-order')
@click.argument('config-file', type=click.Path(exists=True, dir_okay=False))
@click.argument('input-prefix', type=str)
def high_order(config_file, input_prefix):
    """
    CONFIG_FILE: YAML file of correlation parameters, including C3 parameters\n
    INPUT_PREFIX: basefoname of the first-order run; '<INPUT_PREFIX>.<tstamp>.h5'
    files are processed
    """
    process_high_order(config_file, input_prefix)
# end func


if __name__ == '__main__':
    cli()
# end if

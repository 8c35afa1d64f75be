"""
Description:
    Miscellaneous functions that don't fit elsewhere

References:

CreationDate:   02/08/19

Revision History:
    LastUpdate:     02/08/19   Initial helpers for logging and job bookkeeping
"""

import subprocess
import os
import logging

def setup_logger(name, log_file, level=logging.INFO, propagate=False):
    """
    Function to setup a logger; adapted from stackoverflow
    """
    formatter = logging.Formatter('%(asctime)s %(levelname)s %(message)s')
    handler = logging.FileHandler(log_file, mode='w')
    handler.setFormatter(formatter)

    logger = logging.getLogger(name+log_file)
    logger.setLevel(level)
    logger.addHandler(handler)
    logger.propagate = propagate
    return logger
# end func

def get_git_revision_hash() -> str:
    """
    Returns the current git hash, if this file is a part of the repository
    """
    path = os.path.dirname(os.path.realpath(__file__))
    result = ''
    try:
        result = subprocess.check_output(['git', 'rev-parse', 'HEAD'],
                                         cwd=path, stderr=subprocess.DEVNULL).decode('ascii').strip()
    except Exception:
        pass
    # end try

    return result
# end func

def split_list(lst, npartitions):
    k, m = divmod(len(lst), npartitions)
    return [lst[i * k + min(i, m):(i + 1) * k + min(i + 1, m)] for i in range(npartitions)]
# end func

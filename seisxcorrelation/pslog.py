import logging

from mpi4py import MPI


def configure(verbosity):
    """Installs a stream handler on the root logger; each record is tagged
    with the elapsed time and the MPI rank that emitted it."""
    log = logging.getLogger("")
    log.setLevel(verbosity)
    ch = logging.StreamHandler()
    formatter = ElapsedFormatter(rank=MPI.COMM_WORLD.Get_rank())
    ch.setFormatter(formatter)
    log.addHandler(ch)


class ElapsedFormatter:

    def __init__(self, rank=0):
        self.rank = rank

    def format(self, record):
        lvl = record.levelname
        name = record.name
        t = int(round(record.relativeCreated/1000.0))
        msg = record.getMessage()
        logstr = "+{}s [{}] {}:{} {}".format(t, self.rank, name, lvl, msg)
        return logstr

"""
Collective reductions across mesh partitions.

The solver needs two mandatory collectives: the global minimum of the time
step estimate and the global count of pinned velocity dofs. Energy
diagnostics additionally sum over partitions. Every partition must take part
in each call, in the same order.

SerialComm is the single-partition communicator. MPIComm wraps an mpi4py
communicator (MPI.COMM_WORLD unless another one is given).
"""


class SerialComm:
    """Communicator for a run on a single partition."""

    rank = 0
    size = 1

    def allreduce_min(self, value):
        return value

    def allreduce_sum(self, value):
        return value


class MPIComm:
    """
    Communicator backed by mpi4py.

    Args:
        comm: mpi4py communicator to wrap (default MPI.COMM_WORLD)
    """

    def __init__(self, comm=None):
        from mpi4py import MPI

        self._mpi = MPI
        self.comm = comm if comm is not None else MPI.COMM_WORLD
        self.rank = self.comm.Get_rank()
        self.size = self.comm.Get_size()

    def allreduce_min(self, value):
        return self.comm.allreduce(value, op=self._mpi.MIN)

    def allreduce_sum(self, value):
        return self.comm.allreduce(value, op=self._mpi.SUM)


def get_comm(use_mpi: bool = False):
    """Return an MPI communicator when requested, otherwise a serial one."""
    if use_mpi:
        return MPIComm()
    return SerialComm()

from lagrangian_hydro.comm import SerialComm, get_comm


def test_serial_reductions_are_identity():
    comm = get_comm()
    assert isinstance(comm, SerialComm)
    assert (comm.rank, comm.size) == (0, 1)
    assert comm.allreduce_min(0.25) == 0.25
    assert comm.allreduce_sum(7) == 7


def test_only_the_collectives_in_use_are_exposed():
    public = {name for name in dir(SerialComm) if not name.startswith("_")}
    assert public == {"rank", "size", "allreduce_min", "allreduce_sum"}

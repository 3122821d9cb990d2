"""
Adaptive explicit time stepping with step rejection and rollback.

Theory:
After every attempted step the CFL estimate is evaluated on the new state.
An estimate below the step just taken means the step violated its own
stability bound: the attempt is discarded, the state and time are restored,
the step shrinks and the attempt is repeated with the same step index. A
comfortable margin lets the step grow slowly for the next iteration.

    dt_est <  dt             -> reject, dt *= shrink, retry
    dt_est >  threshold * dt -> accept, dt *= growth
    otherwise                -> accept, dt unchanged

A shrinking step that falls below its floor means the simulation is
unstable and integration aborts.
"""

from typing import Any, Callable, Dict, List, Optional

import numpy as np
from pyro.util import msg

from .comm import SerialComm
from .errors import HydroError, TimeStepCollapseError


class StepController:
    """
    Accept/reject/grow controller around an explicit ODE solver.

    Attributes:
        operator: Right-hand side with time_step_estimate(S) and invalidate()
        ode_solver: Integrator with step(S, dt) -> S_new
        t_final (float): Final time
        dt (float): Step size proposed for the next attempt
        max_steps (int): Maximum number of accepted steps (negative: no limit)
        dt_shrink (float): Factor applied to dt on rejection
        dt_growth_threshold (float): Margin dt_est / dt above which dt grows
        dt_growth_factor (float): Factor applied to dt on growth
        dt_floor (float): Smallest admissible dt
        print_interval (int): Print a progress line every so many steps
            (0 disables progress output)

        # History tracking
        step (int): Number of accepted steps
        total_rejections (int): Number of rejected attempts over the run
        history (List[dict]): One record per accepted step
    """

    def __init__(self, operator, ode_solver, t_final: float, dt: float,
                 max_steps: int = -1, dt_shrink: float = 0.85,
                 dt_growth_threshold: float = 1.25, dt_growth_factor: float = 1.02,
                 dt_floor: float = float(np.finfo(float).eps),
                 print_interval: int = 0, comm=None):
        self.operator = operator
        self.ode_solver = ode_solver
        self.t_final = t_final
        self.dt = dt
        self.max_steps = max_steps

        self.dt_shrink = dt_shrink
        self.dt_growth_threshold = dt_growth_threshold
        self.dt_growth_factor = dt_growth_factor
        self.dt_floor = dt_floor

        self.print_interval = print_interval
        self.comm = comm if comm is not None else SerialComm()

        # History tracking
        self.step = 0
        self.total_rejections = 0
        self.history: List[Dict[str, Any]] = []

    def _log(self, text: str, kind: str = "bold"):
        if self.comm.rank == 0:
            getattr(msg, kind)(text)

    def advance(self, S: np.ndarray, t: float):
        """
        Take one accepted step, retrying rejected attempts.

        Args:
            S: Current state (not modified)
            t: Current time

        Returns:
            Tuple (S_new, t_new, last_step)

        Raises:
            TimeStepCollapseError: if dt falls below dt_floor
            HydroError: solver failures, re-raised with time and step context
        """
        S_old = S.copy()
        t_old = t
        rejections = 0

        while True:
            dt = self.dt
            last_step = False
            if t_old + dt >= self.t_final:
                dt = self.t_final - t_old
                last_step = True

            try:
                S_new = self.ode_solver.step(S_old, dt)
                dt_est = self.operator.time_step_estimate(S_new)
            except HydroError as err:
                raise err.add_context(time=t_old, step=self.step, dt=dt)

            if dt_est < dt or np.isnan(dt_est):
                rejections += 1
                self.total_rejections += 1
                dt *= self.dt_shrink
                if dt < self.dt_floor:
                    raise TimeStepCollapseError(
                        "Time step fell below its floor; the simulation is unstable",
                        {"time": t_old, "step": self.step, "dt": dt,
                         "dt_floor": self.dt_floor, "dt_estimate": dt_est,
                         "invariant": "dt_estimate >= dt"})
                self.dt = dt
                self.operator.invalidate()
                self._log(f"Repeating step {self.step}, dt = {dt:.6e}", "warning")
                continue

            if dt_est > self.dt_growth_threshold * dt:
                self.dt = dt * self.dt_growth_factor
            else:
                self.dt = dt
            break

        self.step += 1
        t_new = t_old + dt
        self.history.append({
            'step': self.step,
            'time': t_new,
            'dt': dt,
            'dt_estimate': dt_est,
            'rejections': rejections,
        })
        return S_new, t_new, last_step

    def run(self, S: np.ndarray, t: float = 0.0,
            callback: Optional[Callable[[np.ndarray, float, int], None]] = None):
        """
        Integrate until t_final or max_steps accepted steps.

        Args:
            S: Initial state (not modified)
            t: Initial time
            callback: Optional function called as callback(S, t, step) after
                every accepted step

        Returns:
            Tuple (S, t) at the end of the run
        """
        S = S.copy()
        while t < self.t_final:
            if self.max_steps >= 0 and self.step >= self.max_steps:
                break

            S, t, last_step = self.advance(S, t)

            if self.print_interval > 0 and (self.step % self.print_interval == 0 or last_step):
                self._log(self._progress_line(S, t))

            if callback is not None:
                callback(S, t, self.step)

            if last_step:
                break

        return S, t

    def _progress_line(self, S: np.ndarray, t: float) -> str:
        _, _, e = self.operator.blocks(S)
        norm_e = np.sqrt(self.comm.allreduce_sum(float(np.dot(e, e))))
        return (f"step {self.step:5d}, t = {t:.4f}, dt = {self.history[-1]['dt']:.6e}, "
                f"|e| = {norm_e:.10e}")

    def get_diagnostics(self) -> Dict[str, Any]:
        """Summary of the accepted steps."""
        if self.history:
            dts = [record['dt'] for record in self.history]
            avg_dt = float(np.mean(dts))
            min_dt = float(np.min(dts))
            max_dt = float(np.max(dts))
        else:
            avg_dt = min_dt = max_dt = 0.0

        return {
            'current_dt': self.dt,
            'average_dt': avg_dt,
            'min_dt': min_dt,
            'max_dt': max_dt,
            'total_steps': self.step,
            'total_rejections': self.total_rejections,
            'parameters': {
                'dt_shrink': self.dt_shrink,
                'dt_growth_threshold': self.dt_growth_threshold,
                'dt_growth_factor': self.dt_growth_factor,
                'dt_floor': self.dt_floor,
            }
        }

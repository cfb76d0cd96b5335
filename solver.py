import logging

import numpy as np

from constants import *
from errors import NonConvergenceError, SingularMatrixError, SingularSystemError

logger = logging.getLogger(__name__)


def solve_linear_circuit(G, sources, time=None):
    """
    Solves G * VI = sources by inverting G.
    Returns the solution as a column Matrix of node voltages and branch currents.
    """
    try:
        return G.inverse() * sources
    except SingularMatrixError:
        raise SingularSystemError("Singular system matrix", time=time) from None


def solve_nonlinear_circuit(assemble, V_ini, node_count, max_iter=MAX_ITER, tol=TOLERANCE, time=None):
    """
    Newton-Raphson solver for nonlinear circuits.

    Parameters:
        assemble   : callable(V_guess) -> (G, sources, limited), the system linearized
                     around V_guess and whether a junction voltage was limited
        V_ini      : initial guess (flat numpy array), usually the previous time step's solution
        node_count : number of node voltages at the top of the solution vector
        max_iter   : iterations allowed before giving up
        tol        : largest node voltage change accepted as converged; an iteration
                     that limited a junction is never accepted
    Returns the converged solution Matrix.
    """
    V_k = np.array(V_ini, dtype=float)

    for i in range(max_iter):
        # 1. Generate linearized G and sources for the current guess V_k
        G_iter, sources_iter, limited = assemble(V_k)

        # 2. Solve the linear system
        solution = solve_linear_circuit(G_iter, sources_iter, time=time)
        V_new = solution.to_array()[:, 0].copy()

        # 3. Check for convergence on the node voltages
        max_error = np.max(np.abs(V_new[:node_count] - V_k[:node_count]), initial=0.0)

        V_k = V_new  # Update guess for next iteration
        logger.debug("Iteration: %d, error = %g, limited = %s", i, max_error, limited)
        if max_error < tol and not limited:
            logger.debug("Converged in %d iterations.", i + 1)
            return solution
    else:
        raise NonConvergenceError(
            f"Newton-Raphson failed to converge in {max_iter} iterations",
            time=time, iterations=max_iter)

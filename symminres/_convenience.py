from .linsys import Minres
import numpy


def minres(
    A,
    b,
    M=None,
    x0=None,
    tol=1e-5,
    maxiter=None,
    uplo=None,
    timings=None,
):
    '''Solve the self-adjoint linear system ``A x = b`` with MINRES.

    Unlike :py:class:`~symminres.linsys.Minres`, ``M=None`` means that no
    preconditioner is used and the full matrix ``A`` is used (``uplo=None``).

    :return: a tuple ``(x, solver)``. ``x`` has the shape of ``b`` and is
      ``None`` if the tolerance was not reached; ``solver`` is the
      :py:class:`~symminres.linsys.Minres` instance that holds the iteration
      count, the achieved relative residual norm and the last iterate in
      ``solver.xk``.
    '''
    assert len(A.shape) == 2
    assert A.shape[0] == A.shape[1]
    assert A.shape[1] == b.shape[0]

    b = numpy.asarray(b)
    if x0 is None:
        x0 = numpy.zeros(b.shape)
    else:
        # accept (N,) and (N, 1) initial guesses for both shapes of b
        x0 = numpy.asarray(x0).reshape(b.shape)

    out = Minres(
        A,
        M="identity" if M is None else M,
        uplo=uplo,
        tol=tol,
        maxiter=maxiter,
        timings=timings,
    )
    out.xk = out.solve_with_guess(b, x0)
    return out.xk if out.error <= out.tol else None, out

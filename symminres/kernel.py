# -*- coding: utf8 -*-
'''
The preconditioned MINRES recurrence.

:py:func:`minres_kernel` carries out the short-recurrence MINRES method of
Paige and Saunders for one right hand side. It only needs the application of
the operator and of the preconditioner and keeps all working vectors in a
:py:class:`MinresWorkspace` that can be reused across solves of the same
dimension.
'''
import warnings

import numpy
from . import utils


__all__ = ['MinresWorkspace', 'KernelResult', 'minres_kernel']


class MinresWorkspace(object):
    '''Working vectors of the MINRES recurrence.

    Holds the Lanczos vectors ``v_old``, ``v``, ``v_new``, the preconditioned
    Lanczos vectors ``w``, ``w_new`` and the search directions ``p_oold``,
    ``p_old``, ``p``, all with ``shape == (N, 1)``. The vectors are allocated
    once and zeroed by :py:meth:`reset` at the start of every solve.

    :param N: the dimension of the problem.
    :param dtype: (optional) the dtype of the vectors. Defaults to ``float``.
    '''
    _names = ['v_old', 'v', 'v_new', 'w', 'w_new', 'p_oold', 'p_old', 'p']

    def __init__(self, N, dtype=float):
        if not utils._isintlike(N) or N < 0:
            raise utils.ArgumentError('N has to be a non-negative integer')
        self.N = N
        self.dtype = numpy.dtype(dtype)
        for name in self._names:
            setattr(self, name, numpy.zeros((N, 1), dtype=self.dtype))

    def reset(self):
        '''Zero all working vectors.'''
        for name in self._names:
            getattr(self, name).fill(0)

    def is_compatible(self, N, dtype):
        '''Can this workspace hold vectors of dimension ``N`` and the given
        ``dtype``?'''
        return self.N == N and numpy.can_cast(dtype, self.dtype, 'same_kind')

    def __repr__(self):
        return '<MinresWorkspace N=%d dtype=%s>' % (self.N, str(self.dtype))


class KernelResult(object):
    '''Outcome of one run of :py:func:`minres_kernel`.

    Attributes:

      * ``iterations``: number of iterations carried out.
      * ``tol_error``: the achieved relative residual norm
        :math:`\\|b-Ax\\|/\\|b\\|`, computed from the returned ``x``.
      * ``breakdown``: ``True`` if the Lanczos process found an invariant
        subspace, i.e., no further progress was possible.
      * ``resnorms``: relative residual norms of all iterates (the first
        entry belongs to the initial guess).
      * ``updated_resnorms``: the updated residual norms of the recurrence,
        relative to the preconditioned norm of the initial residual. They are
        not used for the stopping criterion.
      * ``rotations``: the Givens rotations ``(c, s)`` of all iterations.
    '''
    def __init__(self):
        self.iterations = 0
        self.tol_error = 0.
        self.breakdown = False
        self.resnorms = []
        self.updated_resnorms = []
        self.rotations = []

    def converged(self, tol):
        '''Has the tolerance ``tol`` been reached?'''
        return self.tol_error <= tol

    def __repr__(self):
        return ('KernelResult(iterations={0}, tol_error={1}, breakdown={2})'
                .format(self.iterations, self.tol_error, self.breakdown))


def _as_vector(name, z):
    if z.ndim == 1:
        return utils.shape_vec(z)
    if z.ndim == 2 and z.shape[1] == 1:
        return z
    raise utils.ArgumentError(
        '{0} has to be a vector with shape (N,) or (N,1) but has shape {1}'
        .format(name, z.shape))


def minres_kernel(A, b, x,
                  M=None,
                  maxiter=None,
                  tol=1e-5,
                  workspace=None,
                  breakdown_tol=1e-14
                  ):
    r'''Preconditioned MINRES for a self-adjoint linear system.

    Computes iterates :math:`x_k\in x_0 + K_k(MA, M(b-Ax_0))` that minimize
    :math:`\|b-Ax_k\|_M`, where :math:`x_0` is the initial value of ``x``.
    The preconditioned Lanczos process (variant A(2,7) in Paige, *Computational
    variants of the Lanczos method for the eigenproblem*, 1972) builds the
    basis and the QR decomposition of the Lanczos matrix is updated with one
    Givens rotation per iteration. Only the last two search directions are
    kept.

    The iteration stops as soon as the explicitly computed residual satisfies

    .. math::

       \|b - A x_k\|^2 < \text{tol}^2 \|b\|^2,

    after ``maxiter`` iterations or if the Krylov subspace turned out to be
    invariant.

    :param A: a self-adjoint linear operator with ``shape == (N, N)``
      (compatible with :py:meth:`~symminres.utils.get_linearoperator`).
    :param b: the right hand side with ``shape == (N,)`` or ``(N, 1)``.
    :param x: the initial guess, a ``numpy.ndarray`` with the shape of ``b``.
      It is overwritten with the last iterate.
    :param M: (optional) a self-adjoint and positive definite preconditioner
      that approximates the inverse of ``A``, given as an operator or as an
      object with a ``solve(v)`` method. Defaults to the identity.
    :param maxiter: (optional) maximum number of iterations. Defaults to N.
    :param tol: (optional) tolerance for the relative residual norm.
    :param workspace: (optional) a :py:class:`MinresWorkspace` of dimension N
      to use for the working vectors. A new one is allocated if ``None``.
    :param breakdown_tol: (optional) the Lanczos process is considered
      invariant if the new off-diagonal entry is below ``breakdown_tol``
      times the norm of the current column of the Lanczos matrix.

    :return: a :py:class:`KernelResult`.
    '''
    if not isinstance(x, numpy.ndarray):
        raise utils.ArgumentError('x has to be a numpy.ndarray since it is '
                                  'updated in place.')
    if not numpy.issubdtype(x.dtype, numpy.inexact):
        raise utils.ArgumentError('x has to be a floating point array.')
    if not x.flags.writeable:
        raise utils.ArgumentError('x is not writeable.')
    b = _as_vector('b', numpy.asarray(b))
    xk = _as_vector('x', x)
    N = b.shape[0]
    if xk.shape[0] != N:
        raise utils.ArgumentError(
            'shape mismatch: b has {0} rows but x has {1}'
            .format(N, xk.shape[0]))
    if maxiter is None:
        maxiter = N
    if not utils._isintlike(maxiter) or maxiter < 0:
        raise utils.ArgumentError('maxiter has to be a non-negative integer')
    if tol < 0:
        raise utils.ArgumentError('tol has to be non-negative')

    A = utils.get_linearoperator((N, N), A)
    M = utils.get_linearoperator((N, N), M)

    dtype = utils.find_common_dtype(A, M, b, xk)
    if not numpy.can_cast(dtype, xk.dtype, 'same_kind'):
        raise utils.ArgumentError(
            'x with dtype {0} cannot hold the solution with dtype {1}'
            .format(xk.dtype, dtype))
    if workspace is None:
        workspace = MinresWorkspace(N, dtype)
    elif not workspace.is_compatible(N, dtype) \
            or not numpy.can_cast(workspace.dtype, xk.dtype, 'same_kind'):
        raise utils.ArgumentError(
            '{0} is not compatible with N={1} and dtype={2}'
            .format(workspace, N, dtype))
    workspace.reset()

    result = KernelResult()
    try:
        _iterate(A, b, xk, M, maxiter, tol, workspace, breakdown_tol, result)
    finally:
        # reshaping a non-contiguous flat x yields a copy
        if not numpy.shares_memory(xk, x):
            x[...] = xk.reshape(x.shape)
    return result


def _iterate(A, b, xk, M, maxiter, tol, ws, breakdown_tol, result):
    rhs_norm2 = utils.norm_squared(b)

    # if rhs is exactly(!) zero, return zero solution.
    if rhs_norm2 == 0:
        xk.fill(0)
        result.resnorms.append(0.)
        return
    threshold2 = tol**2 * rhs_norm2

    residual = b - A*xk
    residual_norm2 = utils.norm_squared(residual)
    result.resnorms.append(numpy.sqrt(residual_norm2/rhs_norm2))
    result.tol_error = result.resnorms[-1]
    if residual_norm2 < threshold2 or maxiter == 0:
        return

    # initialize preconditioned Lanczos
    ws.v_new[:] = residual
    ws.w_new[:] = M*ws.v_new
    beta_new = numpy.sqrt(utils.norm_squared(ws.v_new, ws.w_new))
    beta_one = beta_new
    if beta_one == 0:
        # the preconditioner annihilates the residual
        result.breakdown = True
        return
    ws.v_new /= beta_new
    ws.w_new /= beta_new

    # Givens rotations of the last two iterations
    c, c_old = 1., 1.
    s, s_old = 0., 0.
    eta = 1.
    norm_rMR = beta_one

    v_old, v, v_new = ws.v_old, ws.v, ws.v_new
    w, w_new = ws.w, ws.w_new
    p_oold, p_old, p = ws.p_oold, ws.p_old, ws.p

    n = 0
    while n < maxiter:
        # preconditioned Lanczos step; buffers are rotated, not copied
        beta = beta_new
        v_old, v, v_new = v, v_new, v_old
        w, w_new = w_new, w
        v_new[:] = A*w - beta*v_old
        alpha = utils.inner(v_new, w)[0, 0]
        if abs(alpha.imag) > 1e-10*abs(alpha):
            warnings.warn(
                'Iter {0}: abs(alpha.imag) = {1} > 1e-10*abs(alpha). '
                'Is your operator self-adjoint?'
                .format(n, abs(alpha.imag)))
        alpha = alpha.real
        v_new -= alpha*v
        w_new[:] = M*v_new

        beta_new2 = utils.inner(v_new, w_new)[0, 0].real
        column_norm2 = alpha**2 + abs(beta_new2)
        if n > 0:
            column_norm2 += beta**2
        if beta_new2 < -breakdown_tol**2 * column_norm2:
            raise utils.InnerProductError(
                'Iter {0}: <v,Mv> = {1} < 0. Is the preconditioner positive '
                'definite?'.format(n, beta_new2))
        beta_new = numpy.sqrt(max(beta_new2, 0.))
        breakdown = beta_new <= breakdown_tol * numpy.sqrt(column_norm2)
        if breakdown:
            beta_new = 0.
        else:
            v_new /= beta_new
            w_new /= beta_new

        # apply the rotations of the last two iterations to the new column
        r2 = s*alpha + c*c_old*beta
        r3 = s_old*beta

        # compute new Givens rotation
        r1_hat = c*alpha - c_old*s*beta
        r1 = numpy.hypot(r1_hat, beta_new)
        if r1 == 0:
            warnings.warn(
                'Iter {0}: the Lanczos matrix is singular and the iterate '
                'cannot be updated. Is the linear system consistent?'
                .format(n))
            result.breakdown = True
            break
        c_old, s_old = c, s
        c, s = r1_hat/r1, beta_new/r1

        # update search directions
        p_oold, p_old, p = p_old, p, p_oold
        p[:] = (w - r2*p_old - r3*p_oold) / r1

        # update solution and residual norms
        xk += (beta_one*c*eta) * p
        eta = -s*eta
        norm_rMR *= abs(s)
        residual_norm2 = utils.norm_squared(b - A*xk)
        n += 1

        result.rotations.append((c, s))
        result.updated_resnorms.append(norm_rMR/beta_one)
        result.resnorms.append(numpy.sqrt(residual_norm2/rhs_norm2))

        result.breakdown = breakdown
        if residual_norm2 < threshold2 or breakdown:
            break

    result.iterations = n
    result.tol_error = numpy.sqrt(residual_norm2/rhs_norm2)

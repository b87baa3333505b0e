# -*- coding: utf8 -*-
import enum

import numpy
import scipy.sparse
from . import utils, kernel, preconditioners

__all__ = ['Status', 'Minres']


class Status(enum.Enum):
    '''Outcome of :py:meth:`Minres.solve`.'''
    SUCCESS = 'success'
    NO_CONVERGENCE = 'no_convergence'


def _is_matrix(A):
    return isinstance(A, numpy.ndarray) or scipy.sparse.issparse(A)


class Minres(object):
    r'''Preconditioned MINRES solver for self-adjoint linear systems.

    The solver is bound to a self-adjoint (possibly indefinite) operator
    :math:`A` and solves :math:`Ax=b` for arbitrary right hand sides with the
    preconditioned MINRES method of Paige and Saunders, see
    :py:func:`~symminres.kernel.minres_kernel`. Usage::

        solver = Minres(A, tol=1e-10)
        x = solver.solve(b)
        print(solver.iterations, solver.error, solver.info)
        # update b, and solve again starting from the last solution
        x = solver.solve_with_guess(b, x)

    :param A: (optional) a self-adjoint linear operator (compatible with
      :py:meth:`~symminres.utils.get_linearoperator`). If ``None``, then
      :py:meth:`compute` has to be called before solving.
    :param M: (optional) the preconditioner. May be one of the following

        * ``None``: a :py:class:`~symminres.preconditioners.DiagonalPreconditioner`
          if ``A`` is a ``numpy.ndarray`` or a ``scipy.sparse`` matrix and the
          identity otherwise (default).
        * ``'diagonal'`` or ``'identity'``.
        * a self-adjoint and positive definite linear operator that
          approximates the inverse of ``A``, or an object with a
          ``solve(v)`` method such as ``scipy.sparse.linalg.splu(A)``.
    :param uplo: (optional) ``'L'`` (default) or ``'U'``: only the lower or
      upper triangle of a stored matrix ``A`` is used, see
      :py:meth:`~symminres.utils.selfadjoint_view`. ``None`` uses ``A`` as
      it is. Operators that are not stored matrices are always used as they
      are.
    :param tol: (optional) the tolerance for the relative residual norm
      :math:`\|b-Ax\|/\|b\|`. Defaults to the machine epsilon.
    :param maxiter: (optional) maximum number of iterations per right hand
      side. Defaults to twice the dimension of ``A``.
    :param timings: (optional) a :py:class:`~symminres.utils.Timings`
      instance. If provided, all applications of ``A`` and ``M`` are timed
      in ``timings['A']`` and ``timings['M']``.
    :param breakdown_tol: (optional) see
      :py:func:`~symminres.kernel.minres_kernel`.

    After a solve, the following attributes are available:

      * ``iterations``: the number of iterations (the maximum over all
        columns of ``b``).
      * ``error``: the achieved relative residual norm (the maximum over all
        columns of ``b``).
      * ``info``: :py:attr:`Status.SUCCESS` if ``error <= tol`` and
        :py:attr:`Status.NO_CONVERGENCE` otherwise.
      * ``results``: the :py:class:`~symminres.kernel.KernelResult` of each
        column.
      * ``resnorms``: the relative residual norms of the last column.
    '''
    def __init__(self, A=None,
                 M=None,
                 uplo='L',
                 tol=None,
                 maxiter=None,
                 timings=None,
                 breakdown_tol=1e-14
                 ):
        if uplo not in ['L', 'U', None]:
            raise utils.ArgumentError(
                'Invalid value \'{0}\' for argument \'uplo\'. '.format(uplo)
                + 'Valid are L, U and None.')
        if isinstance(M, str) and M not in ['diagonal', 'identity']:
            raise utils.ArgumentError(
                'Invalid value \'{0}\' for argument \'M\'. '.format(M)
                + 'Valid are diagonal and identity.')
        self.uplo = uplo
        self._M = M
        self.timings = timings
        self.breakdown_tol = breakdown_tol
        self.set_tolerance(numpy.finfo(float).eps if tol is None else tol)
        self._maxiter = None
        if maxiter is not None:
            self.set_max_iterations(maxiter)

        self.A = None
        self.M = None
        self.N = None
        self.dtype = None
        self.workspace = None
        self._reset_results()

        if A is not None:
            self.compute(A)

    def _reset_results(self):
        self.results = None

    def compute(self, A):
        '''Bind the solver to the operator ``A``.

        Has to be called again whenever ``A`` changes. Previous results are
        discarded and the preconditioner is set up again.'''
        if len(A.shape) != 2 or A.shape[0] != A.shape[1]:
            raise utils.ArgumentError('A has to be square but has shape {0}'
                                      .format(A.shape))
        N = A.shape[0]
        shape = (N, N)
        if _is_matrix(A) and self.uplo is not None:
            A = utils.selfadjoint_view(A, self.uplo)

        timer_A = timer_M = None
        if self.timings is not None:
            timer_A, timer_M = self.timings['A'], self.timings['M']

        M = self._M
        if M is None:
            M = 'diagonal' if _is_matrix(A) else 'identity'
        if isinstance(M, str) and M == 'diagonal':
            if not _is_matrix(A):
                raise utils.ArgumentError('the diagonal preconditioner '
                                          'needs a stored matrix A.')
            M = preconditioners.DiagonalPreconditioner(A)
        elif isinstance(M, str) and M == 'identity':
            M = preconditioners.IdentityPreconditioner(shape)

        self.A = utils.get_linearoperator(shape, A, timer=timer_A)
        self.M = utils.get_linearoperator(shape, M, timer=timer_M)
        self.N = N
        self.dtype = utils.find_common_dtype(self.A, self.M)
        self._allocate(self.dtype)
        self._reset_results()
        return self

    def _allocate(self, dtype):
        if self.workspace is None \
                or not self.workspace.is_compatible(self.N, dtype) \
                or self.workspace.dtype != numpy.dtype(dtype):
            self.workspace = kernel.MinresWorkspace(self.N, dtype)

    @property
    def maxiter(self):
        if self._maxiter is not None:
            return self._maxiter
        if self.N is None:
            raise utils.ArgumentError('Minres is not initialized.')
        return 2*self.N

    @property
    def tol(self):
        return self._tol

    def set_max_iterations(self, maxiter):
        '''Set the maximum number of iterations per right hand side.'''
        if not utils._isintlike(maxiter) or maxiter < 0:
            raise utils.ArgumentError('maxiter has to be a non-negative '
                                      'integer')
        self._maxiter = maxiter
        return self

    def set_tolerance(self, tol):
        '''Set the tolerance for the relative residual norm.'''
        if tol < 0:
            raise utils.ArgumentError('tol has to be non-negative')
        self._tol = tol
        return self

    def solve(self, b):
        '''Solve :math:`Ax=b` with the zero initial guess.

        :param b: the right hand side with ``shape == (N,)`` or
          ``shape == (N, k)``.

        :return: the approximate solution with the shape of ``b``.
        '''
        b = numpy.asarray(b)
        return self.solve_with_guess(b, numpy.zeros(b.shape))

    def solve_with_guess(self, b, x0):
        '''Solve :math:`Ax=b` starting with the initial guess ``x0``.

        The columns of ``b`` are solved one after another. ``x0`` is not
        modified.

        :param b: the right hand side with ``shape == (N,)`` or
          ``shape == (N, k)``.
        :param x0: the initial guess with ``x0.shape == b.shape``.

        :return: the approximate solution with the shape of ``b``.
        '''
        if self.A is None:
            raise utils.ArgumentError('Minres is not initialized.')
        b = numpy.asarray(b)
        x0 = numpy.asarray(x0)
        if len(b.shape) not in [1, 2] or b.shape[0] != self.N \
                or (len(b.shape) == 2 and b.shape[1] == 0):
            raise utils.ArgumentError(
                'invalid shape {0} of the right hand side b (N={1})'
                .format(b.shape, self.N))
        if x0.shape != b.shape:
            raise utils.ArgumentError(
                'shape mismatch: x0.shape={0} != b.shape={1}'
                .format(x0.shape, b.shape))

        dtype = numpy.result_type(self.dtype, b.dtype, x0.dtype,
                                  float)
        self._allocate(dtype)
        x = numpy.array(x0, dtype=dtype)
        _, (B, X) = utils.shape_vecs(b, x)

        self._reset_results()
        results = []
        for j in range(B.shape[1]):
            results.append(kernel.minres_kernel(
                self.A, B[:, [j]], X[:, j:j+1],
                M=self.M,
                maxiter=self.maxiter,
                tol=self.tol,
                workspace=self.workspace,
                breakdown_tol=self.breakdown_tol))
        self.results = results
        return x

    def _get_results(self):
        if self.results is None:
            raise utils.ArgumentError('no results available; call solve() '
                                      'first.')
        return self.results

    @property
    def iterations(self):
        return max(result.iterations for result in self._get_results())

    @property
    def error(self):
        return max(result.tol_error for result in self._get_results())

    @property
    def info(self):
        if self.error <= self.tol:
            return Status.SUCCESS
        return Status.NO_CONVERGENCE

    @property
    def resnorms(self):
        return self._get_results()[-1].resnorms

    @property
    def last_result(self):
        return self._get_results()[-1]

    @staticmethod
    def operations(nsteps):
        '''Returns the number of operations needed for nsteps of MINRES.

        One application of ``A`` per step is spent on the explicit residual
        that is used in the stopping criterion.'''
        return {'A': 1 + 2*nsteps,
                'M': 1 + nsteps,
                'ip': 3 + 3*nsteps,
                'axpy': 2 + 7*nsteps
                }

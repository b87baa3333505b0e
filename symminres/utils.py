# -*- coding: utf8 -*-
'''
Building blocks of the MINRES kernel and solver.

Exceptions, Euclidean inner products, the adapter that turns matrices,
scipy operators and preconditioner objects into a common
:py:class:`LinearOperator`, and timers for operator applications.
'''

import numbers
import time
import warnings
from collections import defaultdict

import numpy
import scipy.sparse
import scipy.sparse.linalg

__all__ = ['ArgumentError', 'LinearOperatorError', 'InnerProductError',
           'IdentityLinearOperator', 'LinearOperator', 'MatrixLinearOperator',
           'SolveLinearOperator', 'TimedLinearOperator', 'Timer', 'Timings',
           'find_common_dtype', 'get_linearoperator', 'inner',
           'norm_squared', 'selfadjoint_view', 'shape_vec', 'shape_vecs']


class ArgumentError(Exception):
    '''Raised when an argument is invalid.

    Used instead of ``ValueError`` so that errors of ``symminres`` can be
    told apart from built-in errors.
    '''


class LinearOperatorError(Exception):
    '''Raised when a :py:class:`LinearOperator` cannot be built or applied.'''


class InnerProductError(Exception):
    '''Raised when :math:`\\langle v, Mv\\rangle` is not positive, i.e., the
    preconditioner is not positive definite.'''


def _isintlike(x):
    return isinstance(x, (numbers.Integral, numpy.integer))


def find_common_dtype(*args):
    '''Common dtype of arrays, sparse matrices and linear operators.

    Other objects (e.g. ``None``) are skipped. Without any dtype ``float64``
    is returned.'''
    dtypes = []
    for arg in args:
        if not (isinstance(arg, (numpy.ndarray, LinearOperator))
                or scipy.sparse.issparse(arg)):
            continue
        dtype = getattr(arg, 'dtype', None)
        if dtype is None:
            warnings.warn('{0!r} has no dtype.'.format(arg))
            continue
        dtypes.append(dtype)
    if not dtypes:
        return numpy.dtype(float)
    return numpy.result_type(*dtypes)


def shape_vec(x):
    '''Return ``x`` with ``shape==(N,)`` as a column with ``shape==(N,1)``.

    For contiguous arrays the result is a view, i.e., in-place modifications
    of the result are visible in ``x``.'''
    return numpy.reshape(x, (x.shape[0], 1))


def shape_vecs(*args):
    '''Turn every flat ndarray argument into a column.

    :return: ``(flat_vecs, args)`` where ``flat_vecs`` is ``True`` if no
      ndarray argument had two dimensions.'''
    flat_vecs = True
    columns = []
    for arg in args:
        if isinstance(arg, numpy.ndarray):
            if arg.ndim == 1:
                arg = shape_vec(arg)
            else:
                flat_vecs = False
        columns.append(arg)
    return flat_vecs, columns


def inner(X, Y):
    '''Euclidean inner product :math:`X^*Y` of two blocks of columns.

    :param X: numpy array with ``shape==(N,m)``
    :param Y: numpy array with ``shape==(N,n)``

    :return: numpy array with ``shape==(m,n)``.
    '''
    return numpy.dot(X.T.conj(), Y)


def norm_squared(x, Mx=None):
    '''Squared norm :math:`\\langle x, x\\rangle` of a column.

    If ``Mx`` is given, :math:`\\langle x, Mx\\rangle` is returned instead and
    an :py:class:`InnerProductError` is raised unless it is a non-negative
    real number up to round-off.'''
    assert x.ndim == 2 and x.shape[1] == 1
    rho = inner(x, x if Mx is None else Mx)[0, 0]
    if rho.real < 0 or abs(rho.imag) > 1e-10*abs(rho):
        raise InnerProductError(
            '<x,Mx> = {0}. Is the preconditioner positive definite?'
            .format(rho))
    return rho.real


def selfadjoint_view(A, uplo='L'):
    '''Build the self-adjoint matrix defined by one triangle of ``A``.

    :param A: a square ``numpy.ndarray`` or ``scipy.sparse`` matrix.
    :param uplo: ``'L'`` uses the lower triangle (including the diagonal),
      ``'U'`` the upper triangle. The strict other triangle of ``A`` is
      ignored and replaced by the conjugate transpose of the used one.

    :return: a matrix of the same kind as ``A``.
    '''
    if uplo not in ['L', 'U']:
        raise ArgumentError(
            'Invalid value \'{0}\' for argument \'uplo\'. '.format(uplo)
            + 'Valid are L and U.')
    if len(A.shape) != 2 or A.shape[0] != A.shape[1]:
        raise ArgumentError('square matrix expected')
    if scipy.sparse.issparse(A):
        if uplo == 'L':
            T = scipy.sparse.tril(A, k=-1)
        else:
            T = scipy.sparse.triu(A, k=1)
        D = scipy.sparse.diags(A.diagonal().real)
        return (T + T.conj().T + D).tocsr()
    A = numpy.asarray(A)
    if uplo == 'L':
        T = numpy.tril(A, k=-1)
    else:
        T = numpy.triu(A, k=1)
    return T + T.T.conj() + numpy.diag(numpy.diag(A).real)


def get_linearoperator(shape, A, timer=None):
    '''Wrap ``A`` as a :py:class:`LinearOperator` with the given shape.

    ``A`` may be

      * ``None`` (the identity),
      * a :py:class:`LinearOperator`,
      * a ``numpy.ndarray``, ``numpy.matrix`` or ``scipy.sparse`` matrix,
      * a ``scipy.sparse.linalg.LinearOperator``,
      * any object with a ``solve(v)`` method, e.g. the factorization
        returned by ``scipy.sparse.linalg.splu``. ``solve`` is then used as
        the application of the operator.

    :param timer: (optional) a :py:class:`Timer` that records every
      application of the returned operator.
    '''
    if isinstance(A, LinearOperator):
        ret = A
    elif A is None:
        ret = IdentityLinearOperator(shape)
    elif isinstance(A, numpy.matrix):
        ret = MatrixLinearOperator(numpy.asarray(A))
    elif isinstance(A, numpy.ndarray) or scipy.sparse.issparse(A):
        ret = MatrixLinearOperator(A)
    elif isinstance(A, scipy.sparse.linalg.LinearOperator):
        if getattr(A, 'dtype', None) is None:
            raise ArgumentError('scipy LinearOperator has no dtype.')
        ret = LinearOperator(A.shape, A.dtype, A.matmat)
    elif callable(getattr(A, 'solve', None)):
        ret = SolveLinearOperator(shape, A)
    else:
        raise TypeError('cannot use {0} as a linear operator'
                        .format(type(A).__name__))

    if A is not None and timer is not None:
        ret = TimedLinearOperator(ret, timer)

    if shape != ret.shape:
        raise LinearOperatorError('shape mismatch: expected {0}, got {1}'
                                  .format(shape, ret.shape))
    return ret


class Timer(list):
    """Collect the execution times of code blocks run ``with`` the timer.

    Example: ::

        t = Timer()
        with t:
            A.dot(x)
        with t:
            A.dot(y)
        print(t)    # [3.1e-05, 2.9e-05]
    """
    def __enter__(self):
        self.tstart = time.perf_counter()

    def __exit__(self, a, b, c):
        self.append(time.perf_counter() - self.tstart)


class Timings(defaultdict):
    '''A :py:class:`Timer` per operation name, created on first access.

    The solver uses the keys ``'A'`` and ``'M'``::

        timings = Timings()
        solver = Minres(A, timings=timings)
        solver.solve(b)
        print(timings)
    '''
    def __init__(self):
        super(Timings, self).__init__(Timer)

    def get(self, key):
        '''Fastest recorded time for ``key`` or 0 if there is none.'''
        if key in self and len(self[key]) > 0:
            return min(self[key])
        return 0

    def get_ops(self, ops):
        '''Estimated time for ``ops``, a dictionary that maps operation names
        to numbers of applications (see
        :py:meth:`~symminres.linsys.Minres.operations`).'''
        return sum(self.get(op) * count for op, count in ops.items())

    def __repr__(self):
        return 'Timings(' + ', '.join(
            '{0}: {1}'.format(key, self.get(key)) for key in self) + ')'


class LinearOperator(object):
    """Linear operator acting on blocks of columns.

    :param shape: ``(m, n)``.
    :param dtype: dtype of the operator.
    :param dot: callable that maps an array with ``shape==(n,k)`` to an array
      with ``shape==(m,k)``.

    ``A*X`` and ``A.dot(X)`` apply the operator. The operators in this
    package are self-adjoint, so no adjoint is kept.
    """
    def __init__(self, shape, dtype, dot):
        if len(shape) != 2 or not _isintlike(shape[0]) \
                or not _isintlike(shape[1]):
            raise LinearOperatorError('shape must be (m,n) with m and n '
                                      'integer')
        if dot is None:
            raise LinearOperatorError('dot has to be defined')
        self.shape = tuple(shape)
        self.dtype = numpy.dtype(dtype)
        self._dot = dot

    def dot(self, X):
        X = numpy.asanyarray(X)
        if X.ndim != 2 or X.shape[0] != self.shape[1]:
            raise LinearOperatorError(
                'cannot apply {0} to an array with shape {1}'
                .format(self, X.shape))
        if X.shape[1] == 0:
            return numpy.zeros((self.shape[0], 0), dtype=self.dtype)
        return self._dot(X)

    def __mul__(self, X):
        return self.dot(X)

    def __repr__(self):
        m, n = self.shape
        return '<%dx%d %s with dtype=%s>' \
            % (m, n, self.__class__.__name__, str(self.dtype))


class IdentityLinearOperator(LinearOperator):
    def __init__(self, shape):
        super(IdentityLinearOperator, self).__init__(shape, float, self._dot)

    def _dot(self, X):
        return X


class MatrixLinearOperator(LinearOperator):
    def __init__(self, A):
        super(MatrixLinearOperator, self).__init__(A.shape, A.dtype,
                                                   self._dot)
        self._A = A

    def _dot(self, X):
        return numpy.asarray(self._A.dot(X))

    def __repr__(self):
        return '<%dx%d MatrixLinearOperator of %s>' \
            % (self.shape + (type(self._A).__name__,))


class SolveLinearOperator(LinearOperator):
    '''Operator applied through the ``solve`` method of a preconditioner
    object, one column at a time.'''
    def __init__(self, shape, preconditioner):
        self._preconditioner = preconditioner
        dtype = getattr(preconditioner, 'dtype', None)
        super(SolveLinearOperator, self).__init__(
            shape, float if dtype is None else dtype, self._dot)

    def _dot(self, X):
        columns = [numpy.asarray(self._preconditioner.solve(X[:, j]))
                   for j in range(X.shape[1])]
        return numpy.column_stack(columns).reshape(X.shape[0], -1)


class TimedLinearOperator(LinearOperator):
    '''Records the time per column of every application of
    ``linear_operator`` in ``timer``.'''
    def __init__(self, linear_operator, timer=None):
        self._linear_operator = linear_operator
        super(TimedLinearOperator, self).__init__(
            linear_operator.shape, linear_operator.dtype, linear_operator.dot)
        self._timer = Timer() if timer is None else timer

    def dot(self, X):
        k = X.shape[1]
        if k == 0:
            return self._linear_operator.dot(X)
        with self._timer:
            ret = self._linear_operator.dot(X)
        self._timer[-1] /= k
        return ret

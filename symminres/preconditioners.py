# -*- coding: utf8 -*-
import numpy
import scipy.sparse
from . import utils


__all__ = ['Preconditioner', 'IdentityPreconditioner',
           'DiagonalPreconditioner']


class Preconditioner(utils.LinearOperator):
    '''Base class of preconditioners.

    A preconditioner is a self-adjoint and positive definite linear operator
    that approximates the action of the inverse of an operator :math:`A`.
    Applying it (``M*v`` or ``M.dot(v)``) is the same as calling
    :py:meth:`solve`.

    Derived classes implement ``_solve(X)`` for ``X.shape == (N, k)``.
    '''
    def __init__(self, shape, dtype):
        super(Preconditioner, self).__init__(shape, dtype, self._solve)

    def solve(self, v):
        '''Return the approximation of :math:`A^{-1}v`.

        ``v`` may be given with ``shape == (N,)`` or ``shape == (N, k)``; the
        result has the same shape.'''
        v = numpy.asarray(v)
        flat_vecs, (V,) = utils.shape_vecs(v)
        ret = self.dot(V)
        if flat_vecs:
            return ret.reshape(v.shape)
        return ret

    def _solve(self, X):
        raise NotImplementedError('_solve has to be overridden by '
                                  'the derived preconditioner class.')


class IdentityPreconditioner(Preconditioner):
    '''The identity, i.e., no preconditioning.'''
    def __init__(self, shape):
        super(IdentityPreconditioner, self).__init__(shape, numpy.dtype(None))

    def _solve(self, X):
        return X.copy()


class DiagonalPreconditioner(Preconditioner):
    r'''Jacobi preconditioner.

    Approximates :math:`A^{-1}` by :math:`|D|^{-1}` where :math:`D` is the
    diagonal of :math:`A`. The absolute value keeps the preconditioner
    positive definite for indefinite :math:`A`. Zero diagonal entries are
    replaced by one.

    :param A: a square ``numpy.ndarray`` or ``scipy.sparse`` matrix.
    '''
    def __init__(self, A):
        if len(A.shape) != 2 or A.shape[0] != A.shape[1]:
            raise utils.ArgumentError('square matrix expected')
        if scipy.sparse.issparse(A):
            d = numpy.abs(A.diagonal())
        else:
            d = numpy.abs(numpy.diag(numpy.asarray(A)))
        d = numpy.array(d, dtype=float)
        d[d == 0] = 1.
        self.invdiag = (1./d).reshape((-1, 1))
        super(DiagonalPreconditioner, self).__init__(A.shape, float)

    def _solve(self, X):
        return self.invdiag * X

    def __repr__(self):
        return '<%dx%d DiagonalPreconditioner>' % self.shape

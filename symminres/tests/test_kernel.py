import symminres
import symminres.tests.test_utils as test_utils
import numpy
import pytest
from numpy.testing import assert_almost_equal, assert_array_almost_equal, \
    assert_array_equal, assert_equal

from symminres.kernel import MinresWorkspace, minres_kernel


def relres(A, b, x):
    return numpy.linalg.norm(b - A.dot(x)) / numpy.linalg.norm(b)


def preconditioners_for(A):
    return [None, symminres.preconditioners.DiagonalPreconditioner(A)]


def test_identity():
    A = numpy.eye(5)
    b = numpy.arange(1., 6.)
    x = numpy.zeros(5)
    result = minres_kernel(A, b, x, M=numpy.eye(5), tol=1e-10)
    assert_equal(result.iterations, 1)
    assert_array_almost_equal(x, b, decimal=14)
    assert result.tol_error < 1e-14


def test_diagonal():
    A = numpy.diag([1., 2., 3.])
    b = numpy.ones(3)
    x = numpy.zeros(3)
    result = minres_kernel(A, b, x, tol=1e-10, maxiter=10)
    assert result.iterations <= 3
    assert result.converged(1e-10)
    assert_array_almost_equal(x, [1., 0.5, 1./3], decimal=10)


@pytest.mark.parametrize('A', test_utils.get_matrices())
def test_rotations_orthogonal(A):
    b = numpy.ones(A.shape[0], dtype=A.dtype)
    for M in preconditioners_for(A):
        x = numpy.zeros(A.shape[0], dtype=A.dtype)
        result = minres_kernel(A, b, x, M=M, tol=1e-12, maxiter=20)
        assert len(result.rotations) == result.iterations
        for c, s in result.rotations:
            assert_almost_equal(c**2 + s**2, 1., decimal=14)


def test_first_rotation():
    A = test_utils.get_matrix_symm_indef_dense()
    b = numpy.ones(A.shape[0])
    x = numpy.zeros(A.shape[0])
    result = minres_kernel(A, b, x, tol=1e-10, maxiter=1)

    # the first column of the Lanczos matrix is (alpha, beta)
    v = b/numpy.linalg.norm(b)
    Av = A.dot(v)
    alpha = v.dot(Av)
    beta = numpy.linalg.norm(Av - alpha*v)
    r = numpy.hypot(alpha, beta)
    c, s = result.rotations[0]
    assert_almost_equal(c, alpha/r, decimal=12)
    assert_almost_equal(s, beta/r, decimal=12)
    # the rotation annihilates the subdiagonal entry
    assert_almost_equal(-s*alpha + c*beta, 0., decimal=12)


@pytest.mark.parametrize('A', test_utils.get_matrices())
@pytest.mark.parametrize('tol', [1e-10, 1e-2])
def test_tol_error_matches_residual(A, tol):
    N = A.shape[0]
    b = A.dot(numpy.ones(N)) + 1.
    for M in preconditioners_for(A):
        x = numpy.zeros(N, dtype=A.dtype)
        result = minres_kernel(A, b, x, M=M, tol=tol, maxiter=30)
        assert_almost_equal(result.tol_error, relres(A, b, x), decimal=14)
        assert_equal(result.resnorms[-1], result.tol_error)
        assert_equal(len(result.resnorms), result.iterations + 1)
        assert result.converged(tol)


def test_finite_termination_small():
    # without a tolerance only the invariance of the Krylov subspace stops
    A = numpy.diag([1., 2., 3.])
    x = numpy.zeros(3)
    result = minres_kernel(A, numpy.ones(3), x, tol=0., maxiter=10)
    assert result.iterations <= 3
    assert result.breakdown
    assert numpy.isfinite(x).all()
    assert_array_almost_equal(x, [1., 0.5, 1./3], decimal=12)


@pytest.mark.parametrize('A', [test_utils.get_matrix_spd(),
                               test_utils.get_matrix_symm_indef()])
def test_finite_termination(A):
    N = A.shape[0]
    x = numpy.zeros(N)
    result = minres_kernel(A, numpy.ones(N), x, tol=1e-6, maxiter=3*N)
    assert result.iterations <= N
    assert result.converged(1e-6)


def test_breakdown_eigenvector():
    A = numpy.diag([1., 2., 3.])
    b = numpy.array([0., 3., 0.])
    x = numpy.zeros(3)
    result = minres_kernel(A, b, x, tol=1e-10)
    assert_equal(result.iterations, 1)
    assert_array_almost_equal(x, [0., 1.5, 0.])

    # force further iterations: the invariant subspace has to stop them
    x = numpy.zeros(3)
    result = minres_kernel(A, b, x, tol=0., maxiter=5)
    assert_equal(result.iterations, 1)
    assert result.breakdown
    assert numpy.isfinite(x).all()
    assert_array_almost_equal(x, [0., 1.5, 0.])

    # restart from the exact solution
    result = minres_kernel(A, b, x, tol=0., maxiter=5)
    assert_equal(result.iterations, 0)
    assert numpy.isfinite(x).all()
    assert_array_almost_equal(x, [0., 1.5, 0.])
    assert_equal(result.tol_error, 0.)


def test_budget_exhausted():
    A = test_utils.get_matrix_clustered(20)
    b = numpy.ones(20)
    x = numpy.zeros(20)
    result = minres_kernel(A, b, x, tol=1e-10, maxiter=1)
    assert_equal(result.iterations, 1)
    assert result.tol_error > 1e-10
    assert not result.converged(1e-10)
    # the first iterate minimizes ||b - t*A*b|| over t
    Ab = A.dot(b)
    assert_array_almost_equal(x, b.dot(Ab)/Ab.dot(Ab) * b)


def test_zero_rhs():
    x = numpy.ones(3)
    result = minres_kernel(numpy.diag([1., 2., 3.]), numpy.zeros(3), x)
    assert_array_equal(x, numpy.zeros(3))
    assert_equal(result.iterations, 0)
    assert_equal(result.tol_error, 0.)


def test_exact_initial_guess():
    A = numpy.diag([1., 2., 4.])
    x = numpy.array([1., 0.5, 0.25])
    result = minres_kernel(A, numpy.ones(3), x, tol=1e-10)
    assert_equal(result.iterations, 0)
    assert_array_equal(x, [1., 0.5, 0.25])


def test_zero_maxiter():
    A = numpy.diag([1., 2., 3.])
    b = numpy.ones(3)
    x = numpy.ones(3)
    result = minres_kernel(A, b, x, maxiter=0)
    assert_equal(result.iterations, 0)
    assert_array_equal(x, numpy.ones(3))
    assert_almost_equal(result.tol_error, numpy.sqrt(5./3))


def test_warm_start_continues():
    A = test_utils.get_matrix_symm_indef_dense()
    b = numpy.ones(A.shape[0])
    x = numpy.zeros(A.shape[0])
    first = minres_kernel(A, b, x, tol=1e-10, maxiter=3)
    second = minres_kernel(A, b, x, tol=1e-10, maxiter=200)
    assert second.resnorms[0] == pytest.approx(first.tol_error, rel=1e-10)
    assert second.converged(1e-10)
    assert relres(A, b, x) <= 1e-10


def test_exact_inverse_preconditioner():
    A = test_utils.get_matrix_spd()
    b = numpy.ones(10)
    x = numpy.zeros(10)
    result = minres_kernel(A, b, x, M=numpy.linalg.inv(A), tol=1e-10)
    assert_equal(result.iterations, 1)
    assert_array_almost_equal(x, numpy.linalg.solve(A, b))


def test_diagonal_preconditioner_indefinite():
    # badly scaled but diagonally dominant
    rng = numpy.random.RandomState(1)
    R = 0.01*rng.randn(20, 20)
    signs = numpy.where(numpy.arange(20) % 2, -1., 1.)
    A = numpy.diag(signs*numpy.linspace(1, 100, 20)) + R + R.T
    b = numpy.ones(A.shape[0])
    M = symminres.preconditioners.DiagonalPreconditioner(A)
    x = numpy.zeros(A.shape[0])
    result = minres_kernel(A, b, x, M=M, tol=1e-8, maxiter=200)
    assert result.converged(1e-8)
    assert relres(A, b, x) <= 1e-8


def test_complex_hermitian():
    A = test_utils.get_matrix_herm_indef()
    solution = (1+1j)*numpy.ones(10)
    b = A.dot(solution)
    x = numpy.zeros(10, dtype=complex)
    result = minres_kernel(A, b, x, tol=1e-12, maxiter=50)
    assert result.converged(1e-12)
    assert_array_almost_equal(x, solution)


def test_updated_resnorms():
    A = test_utils.get_matrix_spd()
    x = numpy.zeros(10)
    result = minres_kernel(A, numpy.ones(10), x, tol=1e-12, maxiter=20)
    assert_array_almost_equal(result.updated_resnorms, result.resnorms[1:],
                              decimal=8)


def test_vector_shapes():
    A = numpy.diag([1., 2., 3.])
    # column vectors
    x = numpy.zeros((3, 1))
    minres_kernel(A, numpy.ones((3, 1)), x, tol=1e-12)
    assert_array_almost_equal(x, [[1.], [0.5], [1./3]])
    # non-contiguous views are updated in place
    X = numpy.zeros((3, 2))
    minres_kernel(A, numpy.ones(3), X[:, 1], tol=1e-12)
    assert_array_almost_equal(X[:, 1], [1., 0.5, 1./3])
    assert_array_equal(X[:, 0], numpy.zeros(3))


def test_workspace_reuse():
    A = test_utils.get_matrix_symm_indef()
    ws = MinresWorkspace(10)
    x1 = numpy.zeros(10)
    minres_kernel(A, numpy.ones(10), x1, tol=1e-12, workspace=ws)
    b = numpy.arange(1., 11.)
    x2 = numpy.zeros(10)
    minres_kernel(A, b, x2, tol=1e-12, workspace=ws)
    x2_fresh = numpy.zeros(10)
    minres_kernel(A, b, x2_fresh, tol=1e-12)
    assert_array_almost_equal(x2, x2_fresh, decimal=14)

    with pytest.raises(symminres.utils.ArgumentError):
        minres_kernel(A, b, numpy.zeros(10), workspace=MinresWorkspace(9))
    with pytest.raises(symminres.utils.ArgumentError):
        minres_kernel(test_utils.get_matrix_herm_indef(), b,
                      numpy.zeros(10, dtype=complex), workspace=ws)


def test_workspace_reset():
    ws = MinresWorkspace(4, dtype=complex)
    ws.p += 1
    ws.reset()
    for name in MinresWorkspace._names:
        assert_array_equal(getattr(ws, name), numpy.zeros((4, 1)))
    assert ws.is_compatible(4, float)
    assert not ws.is_compatible(5, float)
    with pytest.raises(symminres.utils.ArgumentError):
        MinresWorkspace(-1)


def test_argument_errors():
    A = numpy.diag([1., 2., 3.])
    b = numpy.ones(3)
    with pytest.raises(symminres.utils.LinearOperatorError):
        minres_kernel(numpy.eye(4), b, numpy.zeros(3))
    with pytest.raises(symminres.utils.ArgumentError):
        minres_kernel(A, b, numpy.zeros(4))
    with pytest.raises(symminres.utils.ArgumentError):
        minres_kernel(A, b, [0., 0., 0.])
    with pytest.raises(symminres.utils.ArgumentError):
        minres_kernel(A, b, numpy.zeros(3, dtype=int))
    with pytest.raises(symminres.utils.ArgumentError):
        minres_kernel(A, numpy.ones((3, 2)), numpy.zeros((3, 2)))
    with pytest.raises(symminres.utils.ArgumentError):
        minres_kernel(A, b, numpy.zeros(3), maxiter=-1)
    with pytest.raises(symminres.utils.ArgumentError):
        minres_kernel(A, b, numpy.zeros(3), tol=-1.)
    with pytest.raises(symminres.utils.ArgumentError):
        minres_kernel(A, 1j*b, numpy.zeros(3))
    x = numpy.zeros(3)
    x.flags.writeable = False
    with pytest.raises(symminres.utils.ArgumentError):
        minres_kernel(A, b, x)


def test_indefinite_preconditioner():
    with pytest.raises(symminres.utils.InnerProductError):
        minres_kernel(numpy.diag([1., 2., 3.]), numpy.ones(3),
                      numpy.zeros(3), M=-numpy.eye(3))


def test_non_selfadjoint_warning():
    A = numpy.diag([1j, 2j, 3j])
    x = numpy.zeros(3, dtype=complex)
    with pytest.warns(UserWarning):
        minres_kernel(A, numpy.ones(3, dtype=complex), x, maxiter=2)


def test_inconsistent_singular_system():
    A = numpy.diag([0., 1.])
    x = numpy.zeros(2)
    with pytest.warns(UserWarning):
        result = minres_kernel(A, numpy.array([1., 0.]), x, tol=1e-10)
    assert result.breakdown
    assert_equal(result.iterations, 0)
    assert_equal(result.tol_error, 1.)
    assert_array_equal(x, numpy.zeros(2))

import jax
jax.config.update("jax_enable_x64", True)
import numpy as np
import pytest

import jaxasp as asp

# tight tolerances so that finite differences of the solution are meaningful
TIGHT = asp.OverlapSolverSettings(tola=1e-13, tolr=0.0)
H = 1e-5

CHI_NL = np.array([[1.05, 0.02, -0.03], [0.01, 0.97, 0.04], [-0.02, 0.03, 1.02]])
XI_T = np.array([0.25, -0.15, 0.3])
R_NL = 1.2
INPUTS = dict(chi_nl=CHI_NL, xi_t=XI_T, R_nl=R_NL)


def test_point_inside_a_unit_sphere():
    d = asp.overlap_derivatives(np.eye(3), [0.1, 0.0, 0.0], 1.0, order=1)
    np.testing.assert_allclose(d.value, [0.9, 0.0, 0.0], atol=1e-9)
    np.testing.assert_allclose(d.jacobian("R_nl")[:, 0], [1.0, 0.0, 0.0], atol=1e-9)
    # d = R xi / |xi| - xi
    np.testing.assert_allclose(d.jacobian("xi_t"), np.diag([-1.0, 9.0, 9.0]), atol=1e-8)
    np.testing.assert_allclose(d.jacobian("xi_t")[:, 0], [-1.0, 0.0, 0.0], atol=1e-9)


def test_newton_solution():
    solution = asp.solve_surface_point(np.eye(3), [0.1, 0.0, 0.0], 1.0)
    np.testing.assert_allclose(solution.Xi, [1.0, 0.0, 0.0], atol=1e-10)
    assert float(solution.lagrange_multiplier) == pytest.approx(0.45, abs=1e-10)
    assert solution.iterations == 6


def test_first_step_needs_five_halvings():
    with pytest.raises(asp.ASPError, match="line search failure"):
        asp.compute_overlap(np.eye(3), [0.1, 0.0, 0.0], 1.0, asp.OverlapSolverSettings(max_ls=4))


def test_iteration_budget():
    with pytest.raises(asp.ASPError, match="did not converge in 2 iterations"):
        asp.compute_overlap(np.eye(3), [0.1, 0.0, 0.0], 1.0, asp.OverlapSolverSettings(max_iteration=2))


def test_outside_point_has_no_overlap():
    d = asp.overlap_derivatives(CHI_NL, [1.5, 0.2, 0.0], R_NL, order=3)
    np.testing.assert_array_equal(d.value, 0.0)
    for tensor in (d.first, d.second, d.third):
        assert not np.any(np.asarray(tensor))


def test_non_positive_determinant():
    chi_nl = np.diag([1.0, 1.0, -1.0])
    with pytest.raises(asp.ASPError, match="positive determinant"):
        asp.compute_overlap(chi_nl, XI_T, R_NL)


def test_input_sizes_are_checked():
    with pytest.raises(asp.ASPError, match="'xi_t' has 2 entries but 3"):
        asp.compute_overlap(CHI_NL, [0.1, 0.2], R_NL)


def test_overlap_points_to_the_surface():
    d = np.asarray(asp.compute_overlap(CHI_NL, XI_T, R_NL, TIGHT))
    Xi = np.linalg.solve(CHI_NL, XI_T + d)
    assert np.dot(Xi, Xi) == pytest.approx(R_NL**2, rel=1e-12)
    assert np.linalg.norm(d) > 0.0


def test_first_derivatives(central_difference):
    d = asp.overlap_derivatives(**INPUTS, order=1, settings=TIGHT)
    for a in INPUTS:
        np.testing.assert_allclose(
            d.jacobian(a),
            central_difference(lambda x: asp.compute_overlap(**{**INPUTS, a: x}, settings=TIGHT), INPUTS[a], H),
            rtol=1e-5,
            atol=1e-7,
        )


def test_second_derivatives(central_difference):
    d = asp.overlap_derivatives(**INPUTS, order=2, settings=TIGHT)
    for a in INPUTS:
        for b in INPUTS:
            fd = central_difference(
                lambda x: asp.overlap_derivatives(**{**INPUTS, b: x}, order=1, settings=TIGHT).jacobian(a),
                INPUTS[b],
                H,
            )
            np.testing.assert_allclose(d.hessian(a, b), fd, rtol=1e-5, atol=1e-7)


def test_third_derivatives(central_difference):
    d = asp.overlap_derivatives(**INPUTS, order=3, settings=TIGHT)
    pairs = [
        ("chi_nl", "chi_nl"),
        ("chi_nl", "xi_t"),
        ("chi_nl", "R_nl"),
        ("xi_t", "xi_t"),
        ("R_nl", "xi_t"),
        ("R_nl", "R_nl"),
    ]
    for a, b in pairs:
        for c in INPUTS:
            fd = central_difference(
                lambda x: asp.overlap_derivatives(**{**INPUTS, c: x}, order=2, settings=TIGHT).hessian(a, b),
                INPUTS[c],
                H,
            )
            np.testing.assert_allclose(d.third_derivative(a, b, c), fd, rtol=1e-5, atol=1e-5)


def test_target_at_the_centre_needs_an_initial_guess():
    # the pull back of a zero target is the centre, where the Newton system is singular
    with pytest.raises(asp.ASPError, match="singular Hessian"):
        asp.compute_overlap(np.eye(3), [0.0, 0.0, 0.0], 1.0)

    d = asp.compute_overlap(np.eye(3), [0.0, 0.0, 0.0], 1.0, initial_guess=[1.0, 0.0, 0.0])
    np.testing.assert_allclose(d, [1.0, 0.0, 0.0], atol=1e-12)

    solution = asp.solve_surface_point(np.eye(3), [0.0, 0.0, 0.0], 2.0, initial_guess=[0.0, 0.0, -2.0])
    np.testing.assert_allclose(solution.Xi, [0.0, 0.0, -2.0], atol=1e-12)
    assert float(solution.lagrange_multiplier) == pytest.approx(0.5, abs=1e-12)
    assert solution.iterations == 1


def test_initial_guess_size_is_checked():
    with pytest.raises(asp.ASPError, match="'initial_guess' has 2 entries but 3"):
        asp.compute_overlap(np.eye(3), [0.0, 0.0, 0.0], 1.0, initial_guess=[1.0, 0.0])

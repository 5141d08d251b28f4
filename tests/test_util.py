import numpy as np
import pytest

from sensible_models import Data, estimate, models, set_parameters
from sensible_models.util import numdiff_hessian, parameter_lines, sample_mvn, value_with_error


@pytest.mark.parametrize(
    "x, err, sig, expected",
    [
        (12.34567, 0.00123, 1, "12.346(1)"),
        (-0.123456, 0.000123, 2, "-0.12346(12)"),
        (-0.0000123456, 0.0000001234, 1, "-1.23(1)e-5"),
        (1.0, 0.0, 2, "1(0)"),
        (float("nan"), 1.0, 1, "NaN"),
        (1.2345, 0.067, "auto", "1.23(7)"),
    ],
)
def test_value_with_error(x, err, sig, expected):
    assert value_with_error(x, err, sig) == expected


def test_parameter_lines_label_every_value():
    lines = parameter_lines(np.array([1.2345, 2.0]), np.array([0.067**2, 0.25]), ("mu",))

    assert lines == ["          mu: 1.23(7)", "          p1: 2.0(5)"]


def test_sample_mvn_single_draw_is_a_vector():
    draw = sample_mvn([0.0, 0.0, 0.0], np.eye(3), np.random.default_rng(0))
    assert draw.shape == (3,)


def test_numdiff_hessian_of_a_quadratic():
    A = np.array([[2.0, 0.5], [0.5, 1.0]])

    def f(v):
        return 0.5 * v @ A @ v

    np.testing.assert_allclose(numdiff_hessian(f, np.array([0.3, -1.2])), A, rtol=1e-5)


def test_numdiff_hessian_gives_up_on_non_finite_values():
    assert numdiff_hessian(lambda v: np.inf, np.zeros(2)) is None


def test_sample_mvn_handles_a_singular_covariance():
    rng = np.random.default_rng(0)
    draws = sample_mvn(np.array([1.0, 2.0]), np.ones((2, 2)), rng, size=4000)

    assert draws.shape == (4000, 2)
    assert np.all(np.isfinite(draws))
    np.testing.assert_allclose(draws.mean(axis=0), [1.0, 2.0], atol=0.1)


def test_parameter_uncertainties_carry_the_covariance():
    uncertainties = pytest.importorskip("uncertainties")
    from sensible_models import parameter_uncertainties

    rng = np.random.default_rng(1)
    est = estimate(Data(vector=rng.normal(2.0, 0.5, size=100)), models.normal())

    u = parameter_uncertainties(est)

    assert list(u) == ["mu", "sigma"]
    assert u["mu"].nominal_value == pytest.approx(est.parameters.vector[0])
    cov = np.array(uncertainties.covariance_matrix([u["mu"], u["sigma"]]), dtype=float)
    np.testing.assert_allclose(cov, est.parameters.pages["<Covariance>"].matrix, atol=1e-12)


def test_parameter_uncertainties_need_a_covariance_page():
    pytest.importorskip("uncertainties")
    from sensible_models import InvalidArgument, parameter_uncertainties

    with pytest.raises(InvalidArgument):
        parameter_uncertainties(set_parameters(models.normal(), 0.0, 1.0))

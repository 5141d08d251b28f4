import numpy as np
import pytest

from sensible_models import (
    ArmsSettings,
    Capability,
    CdfSettings,
    Data,
    ImputeSettings,
    InvalidArgument,
    MLESettings,
    Model,
    NumericalFailure,
    ParameterModelSettings,
    Resolution,
    UnsupportedOperation,
    add_settings,
    cdf,
    draw,
    estimate,
    get_settings,
    models,
    parameter_model,
    predict,
    set_parameters,
)
from sensible_models.fallbacks import arms_draw, bootstrap_cov, get_fallback, maximum_likelihood


def _likelihood_only_normal(mu, sigma):
    return set_parameters(models.normal().with_ops(draw=None, cdf=None), mu, sigma)


# ---- cdf ----------------------------------------------------------------------


def _point_mass(rng, model):
    return np.array([model.parameters.vector[0]])


def test_cdf_from_a_single_deterministic_draw():
    model = set_parameters(Model(name="point", vector_base=1, output_size=1, draw=_point_mass), 0.5)
    add_settings(model, CdfSettings(draws=1))

    assert cdf(Data(vector=[0.6]), model) == 1.0
    assert cdf(Data(vector=[0.4]), model) == 0.0
    assert cdf(Data(vector=[0.5]), model) == 1.0


def test_cdf_settings_are_attached_on_first_use_and_reused():
    model = set_parameters(models.normal().with_ops(cdf=None), 0.0, 1.0)
    assert get_settings(model, CdfSettings) is None

    value = cdf(Data(vector=[0.0]), model)
    group = get_settings(model, CdfSettings)
    assert group is not None
    assert group.draws == 10_000
    assert abs(value - 0.5) < 0.03

    cdf(Data(vector=[1.0]), model)
    assert get_settings(model, CdfSettings) is group


def test_cdf_needs_a_query_point():
    with pytest.raises(InvalidArgument):
        cdf(None, set_parameters(models.normal(), 0.0, 1.0))


# ---- ARMS -------------------------------------------------------------------------


def test_arms_draws_follow_a_likelihood_only_normal():
    model = _likelihood_only_normal(2.0, 0.5)
    rng = np.random.default_rng(0)

    xs = np.array([draw(rng, model)[0] for _ in range(3000)])

    assert abs(xs.mean() - 2.0) < 0.06
    assert abs(xs.std() - 0.5) < 0.05
    assert get_settings(model, ArmsSettings) is not None


def test_arms_rebuilds_the_hull_when_parameters_change():
    model = _likelihood_only_normal(0.0, 1.0)
    rng = np.random.default_rng(1)
    draw(rng, model)
    hull = get_settings(model, ArmsSettings).hull

    model.parameters.vector[0] = 50.0
    x = draw(rng, model)[0]

    assert get_settings(model, ArmsSettings).hull is not hull
    assert abs(x - 50.0) < 6.0


def test_arms_fails_when_the_density_is_zero_everywhere():
    def nowhere(data, model):
        return -np.inf

    model = set_parameters(Model(name="nowhere", vector_base=1, log_likelihood=nowhere), 0.0)
    with pytest.raises(NumericalFailure):
        draw(np.random.default_rng(0), model)


def test_draw_fallback_is_univariate_only():
    def flat(data, model):
        return 0.0

    model = set_parameters(Model(name="pair", vector_base=1, output_size=2, log_likelihood=flat), 0.0)

    assert model.capabilities()[Capability.DRAW] is Resolution.UNSUPPORTED
    assert model.capabilities()[Capability.CDF] is Resolution.UNSUPPORTED
    with pytest.raises(UnsupportedOperation):
        draw(np.random.default_rng(0), model)
    with pytest.raises(InvalidArgument):
        arms_draw(np.random.default_rng(0), model)


# ---- maximum likelihood -------------------------------------------------------------


def test_mle_uses_the_starting_point_from_settings():
    rng = np.random.default_rng(2)
    data = Data(vector=rng.normal(-3.0, 2.0, size=300))
    model = models.normal().with_ops(estimate=None)
    add_settings(model, MLESettings(starting_point=np.array([-2.0, 1.5])))

    est = estimate(data, model)

    np.testing.assert_allclose(
        est.parameters.vector, [data.vector.mean(), data.vector.std()], atol=1e-3
    )


def test_gradient_methods_use_the_native_score():
    score_calls = []

    def log_likelihood(data, model):
        return -0.5 * float(np.sum((data.vector - model.parameters.vector[0]) ** 2))

    def score(data, model):
        score_calls.append(1)
        return np.array([np.sum(data.vector - model.parameters.vector[0])])

    data = Data(vector=[1.0, 2.0, 4.5])
    model = Model(name="location", vector_base=1, log_likelihood=log_likelihood, score=score)
    add_settings(model, MLESettings(method="BFGS"))

    est = estimate(data, model)

    assert score_calls
    assert est.parameters.vector[0] == pytest.approx(2.5, abs=1e-5)
    assert est.parameters.pages["<Covariance>"].matrix[0, 0] == pytest.approx(1.0 / 3.0, rel=1e-3)


def test_mle_rejects_a_non_finite_start():
    model = models.normal().with_ops(estimate=None)
    add_settings(model, MLESettings(starting_point=np.array([0.0, -1.0])))
    with pytest.raises(NumericalFailure):
        estimate(Data(vector=[0.0, 1.0]), model)


def test_mle_rejects_a_starting_point_of_the_wrong_size():
    model = models.normal().with_ops(estimate=None)
    add_settings(model, MLESettings(starting_point=np.array([0.0])))
    with pytest.raises(InvalidArgument):
        maximum_likelihood(Data(vector=[0.0, 1.0]), model)


def test_fallback_registry():
    assert get_fallback("estimate") is maximum_likelihood
    with pytest.raises(ValueError):
        get_fallback("p")


# ---- bootstrap ---------------------------------------------------------------------


def test_bootstrap_covariance_of_the_mean():
    rng = np.random.default_rng(3)
    data = Data(vector=rng.normal(0.0, 2.0, size=100))
    est = estimate(data, models.normal())

    cov = bootstrap_cov(data, est, np.random.default_rng(4), draws=300)

    assert cov.matrix.shape == (2, 2)
    expected = 4.0 / 100
    assert 0.5 * expected < cov.matrix[0, 0] < 2.0 * expected


def test_bootstrap_rejects_bad_input():
    est = estimate(Data(vector=[0.0, 1.0, 2.0]), models.normal())
    with pytest.raises(InvalidArgument):
        bootstrap_cov(None, est)
    with pytest.raises(InvalidArgument):
        bootstrap_cov(Data(vector=[0.0, 1.0]), est, draws=1)


# ---- parameter model --------------------------------------------------------------------


def _stochastic_model(rng):
    def noisy_estimate(data, model):
        model.parameters.vector[:] = rng.normal(size=3)

    return Model(name="stochastic", vector_base=3, estimate=noisy_estimate)


def test_parameter_model_without_data_tabulates_reruns():
    model = set_parameters(_stochastic_model(np.random.default_rng(5)), 0.0, 0.0, 0.0)

    add_settings(model, ParameterModelSettings(draws=100, index=-1))
    joint = parameter_model(None, model)
    assert joint.data.matrix.shape == (100, 3)
    assert np.unique(joint.data.matrix[:, 0]).size == 100

    add_settings(model, ParameterModelSettings(draws=50, index=1))
    single = parameter_model(None, model)
    assert single.data.vector.shape == (50,)
    assert single.data.matrix is None


def test_parameter_model_defaults_to_the_first_parameter():
    model = set_parameters(_stochastic_model(np.random.default_rng(6)), 0.0, 0.0, 0.0)
    add_settings(model, ParameterModelSettings(draws=10))

    single = parameter_model(None, model)

    group = get_settings(model, ParameterModelSettings)
    assert group.index == 0
    assert single.data.vector.shape == (10,)


def test_parameter_model_with_data_is_gaussian():
    rng = np.random.default_rng(7)
    data = Data(vector=rng.normal(3.0, 2.0, size=200))
    est = estimate(data, models.normal())

    add_settings(est, ParameterModelSettings(draws=200, index=-1, rng=np.random.default_rng(8)))
    joint = parameter_model(data, est)
    np.testing.assert_allclose(joint.parameters.vector, est.parameters.vector)
    assert joint.parameters.matrix.shape == (2, 2)
    expected = 4.0 / 200
    assert 0.5 * expected < joint.parameters.matrix[0, 0] < 2.0 * expected

    add_settings(est, ParameterModelSettings(draws=200, index=0, rng=np.random.default_rng(8)))
    single = parameter_model(data, est)
    assert single.name == "Normal distribution"
    assert single.parameters.vector[0] == pytest.approx(est.parameters.vector[0])
    assert single.parameters.vector[1] == pytest.approx(np.sqrt(joint.parameters.matrix[0, 0]))


def test_parameter_model_index_out_of_range():
    est = estimate(Data(vector=[0.0, 1.0, 2.0]), models.normal())
    add_settings(est, ParameterModelSettings(draws=10, index=5))
    with pytest.raises(InvalidArgument):
        parameter_model(Data(vector=[0.0, 1.0, 2.0]), est)


# ---- imputation ---------------------------------------------------------------------------


def test_predict_imputes_the_most_likely_value():
    model = set_parameters(models.normal(), 4.0, 1.5)
    data = Data(vector=[3.0, np.nan, 6.0])

    filled = predict(data, model)

    assert filled is not data
    assert np.isnan(data.vector[1])
    assert filled.vector[1] == pytest.approx(4.0, abs=1e-3)
    np.testing.assert_allclose(filled.vector[[0, 2]], [3.0, 6.0])


def test_predict_without_data_fills_one_output_row():
    model = set_parameters(models.normal(), 4.0, 1.5)
    filled = predict(None, model)

    assert filled.matrix.shape == (1, 1)
    assert filled.matrix[0, 0] == pytest.approx(4.0, abs=1e-3)


def test_reestimating_imputation_settles():
    model = estimate(Data(vector=[0.0, 10.0]), models.normal())
    add_settings(model, ImputeSettings(reestimate=True, tolerance=1e-6))

    filled = predict(Data(vector=[1.0, 2.0, np.nan, 3.0]), model)

    assert filled.vector[2] == pytest.approx(2.0, abs=1e-3)

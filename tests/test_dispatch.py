import numpy as np
import pytest
from scipy import stats

from sensible_models import (
    COVARIANCE_PAGE,
    Capability,
    Data,
    InvalidArgument,
    Model,
    Resolution,
    UnsupportedOperation,
    UnsupportedOperationWarning,
    cdf,
    clear,
    draw,
    estimate,
    log_likelihood,
    models,
    options,
    p,
    parameter_model,
    predict,
    resolve_capabilities,
    score,
    set_parameters,
    show,
)
from sensible_models.fallbacks import mle


def _bare():
    model = Model(name="bare", vector_base=1)
    clear(None, model)
    return model


def test_p_and_log_likelihood_agree():
    data = Data(vector=[0.1, -0.4, 1.2])
    model = set_parameters(models.normal(), 0.2, 1.1)

    assert p(data, model) == pytest.approx(np.exp(log_likelihood(data, model)))

    def p_only(d, m):
        return float(np.prod(stats.norm.pdf(d.pack(), 0.2, 1.1)))

    p_model = model.with_ops(log_likelihood=None, p=p_only)
    assert log_likelihood(data, p_model) == pytest.approx(log_likelihood(data, model))


def test_capability_table():
    table = set_parameters(models.normal(), 0.0, 1.0).capabilities()
    assert table[Capability.P] is Resolution.FALLBACK
    assert table[Capability.LOG_LIKELIHOOD] is Resolution.NATIVE
    assert table[Capability.PREDICT] is Resolution.FALLBACK
    assert table[Capability.PARAMETER_MODEL] is Resolution.FALLBACK

    bare = resolve_capabilities(Model(name="bare", vector_base=1))
    for cap in (Capability.ESTIMATE, Capability.P, Capability.SCORE, Capability.DRAW, Capability.CDF):
        assert bare[cap] is Resolution.UNSUPPORTED

    assert resolve_capabilities(models.ols())[Capability.PREDICT] is Resolution.HYBRID


def test_likelihood_of_a_density_free_model_warns_and_returns_zero():
    bare = _bare()
    with pytest.warns(UnsupportedOperationWarning):
        assert p(None, bare) == 0.0
    with pytest.warns(UnsupportedOperationWarning):
        assert log_likelihood(None, bare) == 0.0


def test_strict_mode_raises_instead_of_warning(monkeypatch):
    monkeypatch.setattr(options, "strict", True)
    with pytest.raises(UnsupportedOperation):
        p(None, _bare())
    with pytest.raises(UnsupportedOperation):
        log_likelihood(None, _bare())


def test_null_model_is_rejected_everywhere():
    data = Data(vector=[1.0])
    for op in (estimate, p, log_likelihood, score, predict, cdf, parameter_model):
        with pytest.raises(InvalidArgument):
            op(data, None)
    with pytest.raises(InvalidArgument):
        draw(None, None)
    with pytest.raises(InvalidArgument):
        show(None)


def test_unprepared_parameters_are_rejected():
    data = Data(vector=[1.0])
    model = models.normal()
    for op in (p, log_likelihood, score, predict, cdf, parameter_model):
        with pytest.raises(InvalidArgument):
            op(data, model)
    with pytest.raises(InvalidArgument):
        draw(np.random.default_rng(0), model)


def test_operations_without_slot_or_density_raise():
    bare = _bare()
    with pytest.raises(UnsupportedOperation):
        estimate(Data(vector=[1.0]), bare)
    with pytest.raises(UnsupportedOperation):
        score(None, bare)
    with pytest.raises(UnsupportedOperation):
        draw(np.random.default_rng(0), bare)
    with pytest.raises(UnsupportedOperation):
        cdf(Data(vector=[0.0]), bare)


def test_estimate_without_native_slot_runs_the_optimizer_once(monkeypatch):
    calls = []
    real_minimize = mle.minimize

    def counting_minimize(*args, **kwargs):
        calls.append(1)
        return real_minimize(*args, **kwargs)

    monkeypatch.setattr(mle, "minimize", counting_minimize)

    rng = np.random.default_rng(0)
    x = rng.normal(1.5, 0.7, size=400)
    data = Data(vector=x)
    model = models.normal().with_ops(estimate=None)

    est = estimate(data, model)

    assert len(calls) == 1
    assert model.parameters is None
    mu, sigma = est.parameters.vector
    assert abs(mu - x.mean()) < 1e-3
    assert abs(sigma - x.std()) < 1e-3
    assert est.info.get_value("status") == 0.0
    assert est.info.get_value("log likelihood") == pytest.approx(log_likelihood(data, est))
    assert est.info.get_value("AIC") == pytest.approx(4.0 - 2.0 * est.info.get_value("log likelihood"))

    cov = est.parameters.pages[COVARIANCE_PAGE].matrix
    np.testing.assert_allclose(
        np.diag(cov), [sigma**2 / x.size, sigma**2 / (2 * x.size)], rtol=0.05
    )


def test_estimate_without_data_or_native_slot_runs_the_optimizer_once(monkeypatch):
    calls = []
    real_minimize = mle.minimize

    def counting_minimize(*args, **kwargs):
        calls.append(1)
        return real_minimize(*args, **kwargs)

    monkeypatch.setattr(mle, "minimize", counting_minimize)

    def bowl(data, model):
        return -float(np.sum((model.parameters.vector - 3.0) ** 2))

    est = estimate(None, Model(name="bowl", vector_base=2, log_likelihood=bowl))

    assert len(calls) == 1
    np.testing.assert_allclose(est.parameters.vector, [3.0, 3.0], atol=1e-3)
    assert est.data is None


def test_numerical_score_matches_the_analytic_one():
    rng = np.random.default_rng(1)
    data = Data(vector=rng.normal(0.0, 1.0, size=200))
    model = set_parameters(models.normal(), 0.3, 1.2)

    analytic = score(data, model)
    numeric = score(data, model.with_ops(score=None))
    np.testing.assert_allclose(numeric, analytic, rtol=1e-3, atol=1e-6)

    out = np.zeros(2)
    assert score(data, model, out=out) is out
    np.testing.assert_allclose(out, analytic)
    with pytest.raises(InvalidArgument):
        score(data, model, out=np.zeros(3))


def test_draw_writes_into_out():
    model = set_parameters(models.normal(), 0.0, 1.0)
    rng = np.random.default_rng(0)
    out = np.empty(1)

    assert draw(rng, model, out=out) is out
    with pytest.raises(InvalidArgument):
        draw(rng, model, out=np.empty(2))


def test_predict_returns_complete_data_unchanged():
    data = Data(vector=[1.0, 2.0])
    assert predict(data, set_parameters(models.normal(), 0.0, 1.0)) is data


def test_show_renders_parameters_and_info():
    est = estimate(Data(vector=[0.5, 1.5, 2.0, 3.0]), models.normal())
    text = show(est)

    assert "Normal distribution" in text
    assert "mu" in text
    assert "log likelihood" in text

    assert show(est.with_ops(show=lambda model: "custom")) == "custom"

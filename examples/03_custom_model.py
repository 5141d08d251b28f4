"""A model defined only by its log-likelihood: every other operation falls back."""
import numpy as np
from scipy import stats

from sensible_models import (
    ArmsSettings,
    CdfSettings,
    Data,
    Model,
    add_settings,
    cdf,
    draw,
    estimate,
    score,
    show,
)


def logistic_log_likelihood(data, model):
    loc, scale = model.parameters.vector
    if scale <= 0:
        return -np.inf
    return float(np.sum(stats.logistic.logpdf(data.pack(), loc=loc, scale=scale)))


logistic = Model(name="Logistic", vector_base=2, output_size=1, log_likelihood=logistic_log_likelihood)
print({cap.value: how.value for cap, how in logistic.capabilities().items()})

rng = np.random.default_rng(2)
data = Data(vector=stats.logistic.rvs(loc=1.0, scale=0.7, size=400, random_state=rng))

# Maximum likelihood with a numerical covariance.
est = estimate(data, logistic)
print(show(est))
print("score at the optimum:", score(data, est))

# Draws by adaptive rejection Metropolis sampling.
add_settings(est, ArmsSettings(xl=-50.0, xr=50.0))
xs = np.array([draw(rng, est)[0] for _ in range(2000)])
print("draw mean/sd:", xs.mean(), xs.std())

# Monte Carlo CDF from those draws.
add_settings(est, CdfSettings(draws=2000))
print("P(X <= 1):", cdf(Data(vector=[1.0]), est))

import numpy as np

from sensible_models import Data, cdf, draw, estimate, log_likelihood, models, p, show

rng = np.random.default_rng(0)
x = rng.normal(1.0, 2.0, size=250)
data = Data(vector=x)
data.names.title = "observations"

est = estimate(data, models.normal())
print(show(est))

# p falls back to exp(log_likelihood) since the normal only has the latter.
small = Data(vector=x[:3])
print("log L:", log_likelihood(small, est), " L:", p(small, est))
print("P(X <= 0):", cdf(Data(vector=[0.0]), est))
print("a few draws:", [float(draw(rng, est)[0]) for _ in range(3)])

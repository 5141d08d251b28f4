import numpy as np

from sensible_models import Data, estimate, models, parameter_t_tests, predict, show

rng = np.random.default_rng(1)
n = 80
x1 = np.linspace(0.0, 10.0, n)
x2 = rng.normal(size=n)
y = 3.0 + 0.8 * x1 - 1.5 * x2 + rng.normal(0.0, 0.5, size=n)

# First column is the dependent variable.
data = Data(matrix=np.column_stack([y, x1, x2]))
data.names.cols = ("y", "x1", "x2")

est = estimate(data, models.ols())
parameter_t_tests(est)
print(show(est))

# Known residual covariance: heteroskedastic errors growing with x1.
sigma = np.diag(0.1 + 0.05 * x1)
gls_est = estimate(data, models.gls(sigma))
print("GLS coefficients:", gls_est.parameters.vector)

new = Data(matrix=[[np.nan, 5.0, 0.0], [np.nan, 7.5, 1.0]])
print("predicted y:", predict(new, est).matrix[:, 0])

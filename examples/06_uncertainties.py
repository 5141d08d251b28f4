import numpy as np

from sensible_models import Data, estimate, models, parameter_uncertainties

rng = np.random.default_rng(5)
x = np.linspace(0.0, 1.0, 40)
y = 2.0 - 1.0 * x + rng.normal(0.0, 0.1, size=x.size)
est = estimate(Data(matrix=np.column_stack([y, x])), models.ols())

u = parameter_uncertainties(est)
intercept, slope = u["p0"], u["p1"]
print("intercept:", intercept, " slope:", slope)
print("y at x = 0.5:", intercept + 0.5 * slope)

import scipy.constants as c

e = c.e
kb = c.k
T = 298.15
Vt = (kb * T) / e  # Thermal Voltage (~26mV)

# Newton-Raphson configuration
MAX_ITER = 50
TOLERANCE = 1e-6
GMIN = 1e-12  # Conductance placed across every PN junction

# Transient defaults
DEFAULT_TIME_STEP = 1e-3

# Absolute tolerance used when comparing matrices
MATRIX_EPSILON = 1e-9

# Device defaults (no model cards are read from the netlist)
DIODE_IS = 1e-14
BJT_IS = 1e-14
BJT_BF = 100.0
BJT_BR = 1.0

# Largest junction voltage / Vt passed to exp()
MAX_EXPONENT = 80.0

"""
Coefficients of the simplified forcing expressions.

The greenhouse-gas coefficients are those of IPCC AR6 Table 7.SM.1; the
stratospheric water vapour and tropospheric ozone factors follow
Tanaka et al. (2007).
"""

# CO2
a1 = -2.4785e-07  # W m-2 ppm-2
b1 = 0.00075906  # W m-2 ppm-1
c1 = -0.0021492  # W m-2 ppb-1/2
d1 = 5.2488  # W m-2

# N2O
a2 = -0.00034197  # W m-2 ppm-1
b2 = 0.00025455  # W m-2 ppb-1
c2 = -0.00024357  # W m-2 ppb-1

# CH4
a3 = -8.9603e-05  # W m-2 ppb-1
b3 = -0.00012462  # W m-2 ppb-1
d3 = 0.045194  # W m-2 ppb-1/2

#: Stratospheric H2O forcing from CH4 oxidation (Joos et al. 2001 scaling)
H2O_STRAT_FRACTION = 0.05
H2O_STRAT_EFFICIENCY = 0.036

#: Tropospheric ozone forcing per Dobson unit (W/m2/DU)
O3_TROP_EFFICIENCY = 0.042

# Default parameter values
DEFAULT_ALPHA_CO2 = 5.35
DEFAULT_DELTA_CO2 = 0.05
DEFAULT_DELTA_CH4 = -0.14
DEFAULT_DELTA_N2O = 0.07
DEFAULT_RHO_BC = 0.0508
DEFAULT_RHO_OC = -0.00621
DEFAULT_RHO_SO2 = -0.00724

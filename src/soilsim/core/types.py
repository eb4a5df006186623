"""
Type definitions and type aliases for soilsim.
Provides strong typing throughout the codebase.
"""
from typing import Mapping, Sequence, Union, Any

import numpy as np
from typing_extensions import TypeAlias


# Scalar aliases for clarity
TemperatureC: TypeAlias = float  # °C
InfiltrationM: TypeAlias = float  # m

# Array types for static typing with numpy
FloatArray: TypeAlias = np.ndarray
TemperatureArray: TypeAlias = np.ndarray  # Shape: (n_nodes, n_steps)

# Driving input, indexed by day or step
DrivingSeries: TypeAlias = Union[Sequence[float], np.ndarray]

# Loosely typed parameter input accepted at the call boundary
ParameterMapping: TypeAlias = Mapping[str, Any]

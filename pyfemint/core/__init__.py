from .geometry import Geometry, reference_volume
from .config import ScratchPolicy, SCRATCH
from .errors import UnsupportedOperationError, InvalidConfigurationError
__all__ = ['Geometry', 'reference_volume', 'ScratchPolicy', 'SCRATCH',
           'UnsupportedOperationError', 'InvalidConfigurationError']

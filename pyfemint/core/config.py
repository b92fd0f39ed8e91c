# pyfemint/core/config.py
from dataclasses import dataclass


@dataclass
class ScratchPolicy:
    """
    Defines how integrators manage their work arrays between calls.
    """
    # If True, each integrator keeps named work arrays on the instance and
    # resizes them on demand. Sequential calls allocate nothing, but an
    # instance must not be shared between threads.
    # If False, every call allocates its own work arrays, so one instance can
    # be used concurrently on different elements.
    reuse_buffers: bool = True

    def resolve(self, reuse_buffers: bool = None) -> bool:
        """Returns the explicit choice if given, else the global default."""
        if reuse_buffers is None:
            return self.reuse_buffers
        return bool(reuse_buffers)


# Global, editable in one place:
SCRATCH = ScratchPolicy(reuse_buffers=True)

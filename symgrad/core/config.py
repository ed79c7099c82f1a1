# symgrad/core/config.py
from dataclasses import dataclass


@dataclass
class SessionConfig:
    """Configuration for a Session."""
    # Accelerator used for the final matrix product of `matmul`
    backend: str = "numpy"

    # Logging
    verbose: bool = False

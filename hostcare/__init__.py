"""hostcare — service health monitoring and recovery for a single Linux host."""

__version__ = "0.1.0"

"""Issue configuration, reporting, fix hints, runtime profiling and benchmark comparison for Go code."""

__version__ = "1.0.0"
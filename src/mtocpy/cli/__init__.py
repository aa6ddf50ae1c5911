"""
mtocpy Command-Line Interface
=============================

This package provides the command-line tools of mtocpy:

- **mtocpp**: single-file classdef filter, usable as a doxygen input filter
- **mtocbatch**: translates many classdef files into an output directory

Each tool is implemented as a Click-based CLI application with
comprehensive help and error reporting.
"""

__all__ = ["mtocpp", "mtocbatch"]

"""
Pipeline module for bitplot rendering.

Provides the process supervisor that feeds a renderer over two pipes, the
coordinate text format, and the driver functions that sequence a run.
"""

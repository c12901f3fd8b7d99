"""
Core modules for Tuttu Meter.

This package contains usage normalization, Tuttu token pricing,
user-turn grouping and usage accumulation.
"""

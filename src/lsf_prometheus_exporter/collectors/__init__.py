"""Collectors package for LSF metrics.

Contains one collector module per LSF command. Each module provides fetch
and generate_samples functions that are composed with the CommandCollector
class by its new_collector factory.
"""

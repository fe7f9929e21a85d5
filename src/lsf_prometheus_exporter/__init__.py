"""LSF Prometheus Exporter.

Prometheus exporter for the IBM Spectrum LSF workload manager that polls the
LSF command-line tools and exports host, queue, load, cluster and job metrics.
"""

__version__ = "0.1.0"

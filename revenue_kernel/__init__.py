"""
revenue_kernel -- value objects, typed errors and logging shared by the
revenue engines, configuration and ingestion layers. Zero I/O.
"""

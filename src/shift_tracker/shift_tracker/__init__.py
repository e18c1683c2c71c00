"""Field Shift Tracker package.

Organized by feature modules (shifts, safety, evidence, identity, reports)
with a thin Flask controller layer over service/repository layers.
"""

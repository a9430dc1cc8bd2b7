"""
HTTP surface for the forensic valuation engine.
"""

"""
Data types shared across Rolegate: Discord identifier wrappers, permission
records and results, and the context rule variants.
"""

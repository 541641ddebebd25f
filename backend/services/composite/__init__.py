"""
Composite Services
Interchange serialization, preset loading and the engine cache
"""

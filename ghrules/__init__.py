"""
GreenRules
==========

Rule configuration manager for greenhouse automation: greenhouse selection,
sensor/actuator directory, rule store, draft editor and the enable toggle.
"""

__version__ = "1.0.0"

"""
Lip Track - active speaker detection and shot boundaries from face-mesh lip motion.
"""

__version__ = "1.0.0"

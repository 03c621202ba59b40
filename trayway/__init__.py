"""
TrayWay - a tray menu of folder shortcuts, links and applications.
"""

__version__ = "1.0.0"

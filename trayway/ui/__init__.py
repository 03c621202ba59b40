"""
Windows shown from the tray: the settings window and the quick-access popup.
"""

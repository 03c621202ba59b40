"""
TrayWay System Tray Module

Icon rendering, menu construction, the tray controller and the pystray host.
Import submodules directly (trayway.tray.app pulls in the whole application).
"""

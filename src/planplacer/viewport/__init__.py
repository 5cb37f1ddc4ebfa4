"""
The VIEWPORT layer turns (plan, roster, selection) into a PyVista scene and
routes pointer input back out as position updates.
It has NO knowledge of Qt widgets; the plotter is handed in from the view.
"""

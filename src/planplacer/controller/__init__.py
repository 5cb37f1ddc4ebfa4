"""
The CONTROLLER layer holds work that must not run on the GUI thread
(plan image decoding).
"""

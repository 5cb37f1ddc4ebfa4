"""
The MODEL layer contains the plan reference, the machine roster and the selection.
It has NO knowledge of the Visualization (PyVista).
"""

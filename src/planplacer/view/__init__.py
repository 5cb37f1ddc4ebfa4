"""
The VIEW layer contains the Qt widgets: main window, control panel and the
plan viewer that hosts the PyVista interactor.
"""

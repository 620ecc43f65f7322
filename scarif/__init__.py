APP_NAME = "scarif"
__version__ = "0.1.0"

"""DAQ Error Browser: explore indexed DAQ log errors by hutch, day and time."""

__version__ = "0.1.0"

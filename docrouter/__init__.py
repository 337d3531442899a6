"""docrouter - AI-assisted routing of project documents into folder templates"""

__version__ = "0.3.0"

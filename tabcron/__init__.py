"""tabcron - a local crontab scheduler"""
__version__ = "0.1.0"

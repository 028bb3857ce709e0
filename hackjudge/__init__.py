"""
hackjudge
Hackathon judging service: judge queue and team assignment engine.
"""
__version__ = "1.0.0"

"""
UX Audit Agent

Turns a UX audit report into critical analysis, improvement proposals,
user stories, documentation and a QA check, one LLM step at a time.
"""

__version__ = "1.0.0"

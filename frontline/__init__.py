"""Frontline: the decision core of a voice-call automation platform.

For every caller utterance Frontline compiles a prioritized triage rule set,
classifies the utterance against it, and runs the resulting response through
a fixed-precedence policy chain that decides what the agent says and does
next.
"""

__version__ = "0.1.0"

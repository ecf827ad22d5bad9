"""Core segmentation engine, recording state machine, and IR.

WHY: The core package holds the two subsystems with real algorithmic
depth. Everything else (formatters, CLI, HTTP server) is a thin layer
over these modules.

HOW: ir.py defines the data structures. markup.py, boundaries.py,
punctuation.py and collapse.py are the four segmentation stages, wired
together by segmenter.py. recording.py holds the state machine.

RULES:
- IR dataclasses are the contract between the two subsystems
- Segmentation modules never import the recording module and vice versa
- No I/O in this package
"""

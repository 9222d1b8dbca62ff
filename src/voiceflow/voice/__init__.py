"""
Voice-to-task pipeline.

- candidate.py: tagged parse results and the review draft
- workflow.py: reducer + driver for capture -> parse -> review -> confirm
- parsers.py: transcript parser adapters (API, LLM, offline)
"""

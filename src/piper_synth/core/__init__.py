"""
Core Infrastructure for piper-synth.

    - config.py: Settings loading and SynthesizerConfig validation
    - errors.py: Error taxonomy shared by the synthesizer and sessions
    - logging/: Structured logging with numeric levels
"""

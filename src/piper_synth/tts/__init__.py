"""
Synthesis Components.

    - options.py: SynthesisOptions and override resolution
    - chunk.py: AudioChunk data model
    - session.py: SynthesisSession state machine
    - synthesizer.py: Synthesizer lifecycle and session slot
    - engines/: VoiceEngine interface and the Piper engine
"""

"""Provider event ingestion: dedupe, gift correlation and scoring.

Turns raw provider payloads into timer adjustments; the engine never sees a
raw event.
"""

"""chronogrid.tools package

Developer utilities (payload validation, occurrence expansion).

Keep this package's __init__ free of eager imports so `python -m chronogrid.tools.<name>`
has no import-time side effects.
"""

__all__: list[str] = []

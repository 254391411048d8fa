from .atomic_io import atomic_write_text, decode_exact, read_text_exact

__all__ = [
    "atomic_write_text",
    "decode_exact",
    "read_text_exact",
]

"""Database layer for FieldWatch."""

"""Game Boy Advance ROM header fixing and graphics, palette, font and compression conversion."""

__version__ = "1.0.0"
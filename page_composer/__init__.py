"""page_composer — moteur de composition de pages multi-sites (blocs, placements, locales, rendu)."""
__version__ = "1.0.0"

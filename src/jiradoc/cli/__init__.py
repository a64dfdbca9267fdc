"""jiradoc command line."""

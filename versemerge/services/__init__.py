"""Services around the core: settings, file I/O and reporting."""

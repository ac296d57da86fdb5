"""Remote row stores."""

"""taskdeck: personal task manager with undo/redo and remote sync."""

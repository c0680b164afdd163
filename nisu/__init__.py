"""
NISU study assistant: runs notebook playlists against NotebookLM.
"""

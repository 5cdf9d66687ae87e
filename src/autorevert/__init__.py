"""autorevert keeps live (auto-reload) mode on exactly the documents visible on screen."""

__version__ = "0.1.0"

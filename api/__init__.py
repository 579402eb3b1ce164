"""Reference implementation of the remote invoice store."""

"""RSS Feed Reader: subscribe to RSS/Atom feeds and keep track of what you've read."""

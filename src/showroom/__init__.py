"""showroom: content-addressed design asset store and server-free share links."""

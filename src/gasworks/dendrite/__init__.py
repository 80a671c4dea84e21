"""
Dendrites: the producers of excitation.

A neurone has two: the camera (movement becomes energy) and the web
listener (neighbours firing into it). Both push plain float deltas onto
the same axon queue.
"""

from gasworks.dendrite.web import create_app, parse_listen_address, serve_web_dendrite

__all__ = ["create_app", "parse_listen_address", "serve_web_dendrite"]

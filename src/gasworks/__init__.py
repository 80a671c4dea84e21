"""
Gasworks: an installation of networked neurones.

Each node watches the world through a camera, integrates what it sees
into an energy level shown on its lights, and fires into its neighbours
over the network when that energy peaks.
"""

__version__ = "0.3.0"

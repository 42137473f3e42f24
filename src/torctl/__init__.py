"""
torctl - A command-line client for the Tor control protocol.

Torctl discovers Tor's control socket, authenticates, sends control commands
over a single session and reports the replies. It also derives circuit and
stream listings from the informational replies.
"""

__version__ = "0.1.0"

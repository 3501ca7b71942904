"""
Graph viewport: render engine, styling, graph algorithms and the fullscreen
shutter transition.
"""

from .engine import Camera, NetworkXEngine, RenderEngine
from .transition import ShutterPhase, ShutterTransition
from .viewport import GraphViewport

__all__ = ['Camera', 'NetworkXEngine', 'RenderEngine', 'ShutterPhase', 'ShutterTransition', 'GraphViewport']

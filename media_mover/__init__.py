"""Media Mover: relocate camera media out of a live DCIM tree.

Watches a directory tree for newly created or moved-in media files and
moves matching files into a mirrored destination tree while the camera
or gallery application keeps writing to the source.
"""

__version__ = "1.0.0"
__app_name__ = "Media Mover"

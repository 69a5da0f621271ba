"""
Version management for the InnoConnect API
"""
from inoconnect.__version__ import __version__

# Feature flags
FEATURES = {
    "live_streams": True,
    "project_group_chat": True,
    "unified_membership_events": True,
}


def get_version_info():
    """Get version and feature information"""
    return {
        "version": __version__,
        "features": FEATURES,
    }

"""ContentGuardian - blog content API.

Users register and log in with email + password and receive a bearer token.
Roles:
- admin: manages users and roles, may edit/delete any post or comment
- author: writes posts and manages the comments on them
- reader: reads and comments

The first account ever registered becomes the admin.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"

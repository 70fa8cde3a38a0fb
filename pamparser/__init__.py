"""Parse, edit and write Linux PAM configuration text in pam.conf and pam.d layouts."""

__version__ = "0.1.0"
__all__ = ["model", "parser", "writer", "editor"]
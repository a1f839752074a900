"""Senior Registry - Backend.

Staff log in with a single credential, maintain the roster of enrolled senior
residents and change their own username/password.

Core pieces:
- auth: password hashing, session tokens, the request gate
- residents: the resident record and its CRUD operations
- db: bounded connection pool + parameterized query execution
"""

__all__ = ["__version__"]

__version__ = "0.1.0"

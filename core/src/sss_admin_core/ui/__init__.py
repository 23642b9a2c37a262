"""Server-rendered admin UI.

Deliberately thin: a login form and a create-device form posting back to
the server. All decisions (credential check, session verification,
provisioning) live in the core; the UI only renders their outcome.

Auth: the session token travels in an HttpOnly cookie.
"""

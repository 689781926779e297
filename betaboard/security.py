from flask_talisman import Talisman


def init_security(app):
    """
    Production/staging security headers with a conservative CSP.
    Kanban drag-and-drop lives in static/js; no inline scripts in templates.
    """
    csp = {
        "default-src": ["'self'"],
        "script-src":  ["'self'"],
        "style-src":   ["'self'", "'unsafe-inline'"],  # email previews use inline styles
        "img-src":     ["'self'", "data:", "blob:"],
        "font-src":    ["'self'", "data:"],
        "connect-src": ["'self'"],
        "frame-ancestors": ["'self'"],
        "base-uri":    ["'self'"],
        "form-action": ["'self'"],
    }

    Talisman(
        app,
        content_security_policy=csp,
        force_https=True,
        strict_transport_security=True,
        session_cookie_secure=True,
        frame_options="SAMEORIGIN",
        referrer_policy="strict-origin-when-cross-origin",
    )

"""
Photo Harvest

Authenticates against a WordPress site's REST API with JWT-auth, keeps the
credential in an encrypted session cookie, and uploads media with it.

Usage:
    from photo_harvest.wordpress_client import WordPressClient
    from photo_harvest.session_codec import SessionCodec

    async with WordPressClient() as wp:
        session = await wp.login("https://example.com", "jane", "s3cret")
    cookie_value = SessionCodec(secret).encode(session)
"""

__version__ = "1.0.0"

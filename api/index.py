from menusync.app import app  # noqa: F401  Vercel serves this module's `app`

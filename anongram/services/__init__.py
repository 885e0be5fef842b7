"""
High-level use cases for the Anongram API.

Each service module orchestrates the Store, the mailer and the realtime hub to
implement one business area (verification, users, professions, messages).
Routers and the realtime channel call these services instead of touching the
Store directly.
"""

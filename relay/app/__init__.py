"""
Passwordless Auth Relay Application
===================================

Backend relay between a browser client and an Auth0 tenant.

Packages:
    - auth     : passwordless flow, refresh cookie handling, user info
    - realtime : Socket.IO gate that checks the access token on connect
    - crm      : CRM object-count fan-out

Entry point:
    uvicorn relay.app.main:app --host 0.0.0.0 --port 80
"""

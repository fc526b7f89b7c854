"""Vendor API adapters.

httpx-based clients implementing the driven ports:
- todoist: Todoist REST API v1
- woocommerce: WooCommerce REST API wc/v3
- sendgrid: SendGrid v3 API
- google_classroom: Google Classroom API v1 (OAuth2 user token)
- google_cloud: Compute Engine, Notebooks, AI Platform, Storage and CLIs
"""

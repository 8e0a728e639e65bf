"""Lifecycle handlers for Cloudflare DNS records, page rules, rate limits, load balancer pools and Logpush jobs."""

__version__ = "0.1.0"
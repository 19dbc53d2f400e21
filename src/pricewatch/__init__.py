# src/pricewatch/__init__.py
"""
PriceWatch - Precious Metal and Exchange Rate Alerting Service

Tracks gold/silver prices per country and foreign-exchange rates per currency
pair, keeps a bounded price history per instrument, and pushes threshold
alerts and a daily digest to subscribers over Telegram in English or Arabic.
"""

__version__ = "1.0.0"

"""
Fetch ALB, CloudFront and WAF access logs from S3 (or local disk),
narrow them to a time window and normalize them into CSV.
"""

__version__ = "0.1.0"

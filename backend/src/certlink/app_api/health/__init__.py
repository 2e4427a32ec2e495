"""Health check API"""

"""
PriceFeed configuration package
"""

"""Infrastructure - environment loading and database access"""

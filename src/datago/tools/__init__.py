"""Developer tools"""

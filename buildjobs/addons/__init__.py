"""
Event subscribers that report job progress to outside services.
"""

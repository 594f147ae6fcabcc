"""Pet health access domain"""

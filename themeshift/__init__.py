__appname__ = 'themeshift'
__version__ = 'v0.1.0'

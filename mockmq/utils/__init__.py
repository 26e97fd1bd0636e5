# Utility package

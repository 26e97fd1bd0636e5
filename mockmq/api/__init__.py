# API package

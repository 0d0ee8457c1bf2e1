"""GeoHunt feature modules: geo, scanner, catalog, flavor, progress, shared."""

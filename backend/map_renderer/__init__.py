"""Render TopoJSON regions as SVG or PNG choropleth maps in HTML figures."""

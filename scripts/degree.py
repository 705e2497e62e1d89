# Colour every node by its degree, darkest = most connected.
palette = ["#ffffcc", "#c7e9b4", "#7fcdbb", "#41b6c4", "#2c7fb8", "#253494"]
for n in graph.get_nodes():
    deg = len(graph.get_neighbours(n))
    set_color(n, palette[min(deg, len(palette) - 1)])

import logging

import ipyleaflet
import pandas as pd

logger = logging.getLogger("sampleframe.widget.map")


class SampleMap(ipyleaflet.Map):
    """Leaflet map showing sample sites as clustered markers."""

    def __init__(self, zoom: int = 8, **kwargs):
        kwargs.setdefault("scroll_wheel_zoom", True)
        super().__init__(zoom=zoom, **kwargs)
        self.add(ipyleaflet.ScaleControl(position="bottomleft"))

        self.sample_points_layer = None

    def add_sample_points(
        self,
        points_data: pd.DataFrame,
        lon_column: str = "lon",
        lat_column: str = "lat",
        label_column: str = "gid",
    ):
        """Add sample points layer and centre the map on the mean location."""
        if self.sample_points_layer:
            logger.debug("Removing existing sample points layer.")
            self.remove(self.sample_points_layer)
            self.sample_points_layer = None

        if points_data.empty:
            logger.debug("No sample points to display.")
            return

        markers = []
        logger.debug(f"Adding {len(points_data)} sample points to the map.")
        for _, point in points_data.iterrows():
            marker = ipyleaflet.Marker(
                location=(point[lat_column], point[lon_column]),
                title=str(point.get(label_column, "")),
                draggable=False,
            )
            markers.append(marker)

        self.sample_points_layer = ipyleaflet.MarkerCluster(
            markers=markers, name="Sample sites"
        )
        self.add(self.sample_points_layer)
        self.center = (
            float(points_data[lat_column].mean()),
            float(points_data[lon_column].mean()),
        )

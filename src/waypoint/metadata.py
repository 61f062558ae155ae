PROJECT_NAME = "waypoint"
VERSION = "0.4.0"

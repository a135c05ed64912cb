# Loaded by ControllerDirectoryStrategy, one *_controller.py file at a time

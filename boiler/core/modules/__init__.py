# Core modules for boiler

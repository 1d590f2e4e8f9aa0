"""QueueTicket web server: document endpoints, distributor and display routes"""

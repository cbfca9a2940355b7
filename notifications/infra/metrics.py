from prometheus_client import Counter, Gauge

notifications_created_total = Counter("notifications_created_total", "Notifications persisted", ["title"])
notifications_pushed_total = Counter("notifications_pushed_total", "Push attempts", ["outcome"])
notification_emails_total = Counter("notification_emails_total", "Notification email outcomes", ["outcome"])
notification_email_jobs_pending = Gauge("notification_email_jobs_pending", "Email jobs waiting in the index")
users_online = Gauge("presence_users_online", "Users currently marked online")

"""Main URL mapping configuration file.

Only the admin is routed here; the storage services are consumed by
whatever HTTP layer the deployment puts in front of them.
"""

from django.contrib import admin
from django.urls import path

admin.autodiscover()

urlpatterns = [
    path('admin/', admin.site.urls),
]

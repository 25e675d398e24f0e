from django.contrib import admin
from django.urls import path

admin.site.site_header = 'Administración de la tienda'

urlpatterns = [
    path('admin/', admin.site.urls),
]

from django.urls import path
from . import views

urlpatterns = [
    path('', views.booking_list, name='booking_list'),
    path('calendar/', views.calendar_events, name='calendar_events'),
    path('price/', views.price_quote, name='price_quote'),
    path('availability/', views.availability, name='availability'),
    path('tasks/', views.task_list, name='task_list'),
    path('tasks/<int:task_id>/', views.task_detail, name='task_detail'),
    path('addons/categories/', views.addon_categories, name='addon_categories'),
    path('addons/services/', views.addon_services, name='addon_services'),
    path('addons/services/<int:service_id>/', views.addon_service_detail, name='addon_service_detail'),
    path('addons/<int:addon_id>/', views.booking_addon_detail, name='booking_addon_detail'),
    path('<int:booking_id>/', views.booking_detail, name='booking_detail'),
    path('<int:booking_id>/addons/', views.booking_addons, name='booking_addons'),
]

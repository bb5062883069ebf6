from django.urls import path
from . import views

urlpatterns = [
    path('', views.payment_list, name='payment_list'),
    path('booking/<int:booking_id>/', views.booking_payments, name='booking_payments'),
    path('<int:payment_id>/', views.payment_detail, name='payment_detail'),
]

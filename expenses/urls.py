from django.urls import path
from . import views

urlpatterns = [
    path('', views.expense_list, name='expense_list'),
    path('categories/', views.expense_categories, name='expense_categories'),
    path('<int:expense_id>/', views.expense_detail, name='expense_detail'),
]
